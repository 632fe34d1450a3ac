from flask_socketio import join_room, leave_room, emit
from flask import current_app
from livequiz import socketio
from typing import Optional


def _room_name(room_code: str) -> str:
    return f"room:{room_code.upper()}"


def broadcast_state_update(room_code: Optional[str], activation_id: Optional[int] = None) -> None:
    """Hint every client in the room to re-synchronise now.

    Clients still poll on their own interval; this only shortens the wait.
    """
    if not room_code:
        return
    payload = {'room_code': room_code}
    if activation_id is not None:
        payload['activation_id'] = activation_id
    socketio.emit('state_update', payload, to=_room_name(room_code), namespace='/ws')


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_join_room(data):
    room_code = (data or {}).get('room_code')
    if not room_code:
        emit('error', {'message': 'room_code is required'})
        return
    room = _room_name(room_code)
    join_room(room)
    current_app.logger.info(f"[ws] joined {room}")
    emit('joined', {'room': room})


def handle_leave_room(data):
    room_code = (data or {}).get('room_code')
    if not room_code:
        emit('error', {'message': 'room_code is required'})
        return
    room = _room_name(room_code)
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('join_room', handle_join_room, namespace=namespace)
        socketio.on_event('leave_room', handle_leave_room, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
