from flask import Blueprint, jsonify, request, current_app
from livequiz import db
from livequiz.models import Room, Player, Activation, ACTIVATION_TYPES
from livequiz.socketio_events import broadcast_state_update


rooms = Blueprint('rooms', __name__)


def _room_or_404(room_code: str) -> Room:
    return Room.query.filter_by(room_code=room_code.upper()).first_or_404()


@rooms.route('', methods=['POST'])
def create_room():
    data = request.get_json(silent=True) or {}
    room = Room(name=data.get('name'))
    db.session.add(room)
    db.session.commit()
    current_app.logger.info(f"[room] created room={room.room_code}")
    return jsonify({
        'message': 'New room created!',
        'id': room.id,
        'room_code': room.room_code,
    }), 201


@rooms.route('/join', methods=['POST'])
def join_room():
    data = request.get_json(silent=True) or {}
    room_code = data.get('room_code')
    name = (data.get('name') or '').strip()
    if not all([room_code, name]):
        return jsonify({'error': 'Room code and player name are required'}), 400

    room = Room.query.filter_by(room_code=str(room_code).upper()).first()
    if not room:
        return jsonify({'error': 'Room not found'}), 404

    player = Player(name=name, room_id=room.id)
    db.session.add(player)
    db.session.commit()
    broadcast_state_update(room.room_code)
    return jsonify(player.to_dict()), 201


@rooms.route('/<string:room_code>/leaderboard', methods=['GET'])
def leaderboard(room_code):
    room = _room_or_404(room_code)
    # Join order is the stable tie-break for equal scores
    players = Player.query.filter_by(room_id=room.id).order_by(Player.id).all()
    ranked = sorted(players, key=lambda p: p.score or 0, reverse=True)
    return jsonify({
        'room_code': room.room_code,
        'players': [p.to_dict() for p in ranked],
    })


@rooms.route('/<string:room_code>/activations', methods=['POST'])
def create_activation(room_code):
    room = _room_or_404(room_code)
    data = request.get_json(silent=True) or {}
    activation_type = data.get('type')
    if activation_type not in ACTIVATION_TYPES:
        return jsonify({'error': f"type must be one of {', '.join(ACTIVATION_TYPES)}"}), 400

    options = data.get('options') or []
    if not isinstance(options, list) or any(
        not isinstance(o, dict) or not o.get('id') or not o.get('text') for o in options
    ):
        return jsonify({'error': 'options must be a list of {id, text}'}), 400
    option_ids = [str(o['id']) for o in options]
    if len(set(option_ids)) != len(option_ids):
        return jsonify({'error': 'option ids must be unique'}), 400
    if activation_type in ('poll', 'multiple_choice') and len(options) < 2:
        return jsonify({'error': 'At least two options are required'}), 400
    if activation_type == 'multiple_choice' and not data.get('correct_answer'):
        return jsonify({'error': 'correct_answer is required for multiple_choice'}), 400
    if activation_type == 'text_answer' and not data.get('exact_answer'):
        return jsonify({'error': 'exact_answer is required for text_answer'}), 400

    time_limit = data.get('time_limit')
    if time_limit is not None:
        try:
            time_limit = int(time_limit)
        except (TypeError, ValueError):
            return jsonify({'error': 'time_limit must be an integer'}), 400
        min_limit = int(current_app.config.get('MIN_TIME_LIMIT_SEC', 5))
        if time_limit < min_limit:
            return jsonify({'error': f'time_limit must be at least {min_limit} seconds'}), 400

    activation = Activation(
        room_id=room.id,
        type=activation_type,
        question=data.get('question'),
        options=[{'id': str(o['id']), 'text': o['text']} for o in options],
        correct_answer=data.get('correct_answer') if activation_type == 'multiple_choice' else None,
        exact_answer=data.get('exact_answer') if activation_type == 'text_answer' else None,
        time_limit=time_limit,
    )
    db.session.add(activation)
    db.session.commit()
    current_app.logger.info(f"[activation] created id={activation.id} room={room.room_code} type={activation_type}")
    broadcast_state_update(room.room_code, activation.id)
    return jsonify(activation.to_dict(include_answers=True)), 201
