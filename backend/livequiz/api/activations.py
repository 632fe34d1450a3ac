import math
import time

from flask import Blueprint, jsonify, request, current_app
from livequiz import db
from livequiz.errors import PipelineError, ValidationError
from livequiz.models import Activation, Player, POLL_STATES
from livequiz.services.ledger import VoteLedger
from livequiz.services.responses import ActivationResponseService
from livequiz.services.scheduler import schedule_voting_timer
from livequiz.services.tallies import derive_snapshot
from livequiz.socketio_events import broadcast_state_update


activations = Blueprint('activations', __name__)


def _error(err: PipelineError):
    return jsonify(err.to_dict()), err.status


def _require_int(data, key):
    value = data.get(key)
    if value is None or value == '' or isinstance(value, bool):
        raise ValidationError(f'{key} is required', code='missing_fields')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{key} must be an integer', code='invalid_field')


def _require_number(data, key):
    value = data.get(key)
    if value is None or isinstance(value, bool):
        raise ValidationError(f'{key} is required', code='missing_fields')
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{key} must be a number', code='invalid_field')
    if not math.isfinite(number):
        raise ValidationError(f'{key} must be a finite number', code='invalid_field')
    return number


def _room_code(activation):
    return activation.room.room_code if activation.room else None


@activations.route('/activations/<int:activation_id>', methods=['GET'])
def get_activation(activation_id):
    activation = db.get_or_404(Activation, activation_id)
    # Answers stay hidden until the activation closes
    return jsonify(activation.to_dict(include_answers=activation.poll_state == 'closed'))


@activations.route('/activations/<int:activation_id>/state', methods=['POST'])
def set_poll_state(activation_id):
    data = request.get_json(silent=True) or {}
    new_state = data.get('poll_state')
    if new_state not in POLL_STATES:
        return jsonify({'error': f"poll_state must be one of {', '.join(POLL_STATES)}"}), 400

    activation = db.get_or_404(Activation, activation_id)
    current = activation.poll_state or 'pending'
    if POLL_STATES.index(new_state) <= POLL_STATES.index(current):
        return jsonify({
            'success': False,
            'error': 'invalid_transition',
            'message': f'Cannot move from {current} to {new_state}',
        }), 409

    activation.poll_state = new_state
    if new_state == 'voting':
        activation.timer_started_at = time.time()
    db.session.add(activation)
    db.session.commit()
    current_app.logger.info(f"[state] activation={activation.id} {current} -> {new_state}")

    broadcast_state_update(_room_code(activation), activation.id)
    if new_state == 'voting':
        schedule_voting_timer(current_app._get_current_object(), activation.id)
    return jsonify(activation.to_dict(include_answers=new_state == 'closed'))


@activations.route('/activations/<int:activation_id>/poll', methods=['GET'])
def get_poll_snapshot(activation_id):
    activation = db.get_or_404(Activation, activation_id)
    player_id = request.args.get('player_id')
    responses = VoteLedger().responses_for(activation.id)
    snapshot = derive_snapshot(activation.options, responses, activation.poll_state, player_id)
    payload = snapshot.to_dict()
    payload['activationId'] = activation.id
    return jsonify(payload)


@activations.route('/activations/<int:activation_id>/votes', methods=['POST'])
def cast_vote(activation_id):
    data = request.get_json(silent=True) or {}
    try:
        player_id = _require_int(data, 'playerId')
    except ValidationError as err:
        return _error(err)
    option_id = data.get('optionId')
    if option_id is None or option_id == '':
        return _error(ValidationError('optionId is required', code='missing_fields'))

    result = VoteLedger().cast_vote(activation_id, player_id, str(option_id))
    if not result.ok:
        return _error(result.error)

    vote = result.value
    activation = db.session.get(Activation, activation_id)
    broadcast_state_update(_room_code(activation), activation_id)
    return jsonify({'success': True, 'vote': vote.to_dict()}), 201


@activations.route('/calculate-points', methods=['POST'])
def calculate_points():
    """Score one answer.

    Accepts either ``{activationId, playerId, timeTakenMs, isCorrect}`` from a
    trusted caller, or ``{activationId, playerId, answer, timeTakenMs, ...}``
    in which case the answer is validated here.
    """
    data = request.get_json(silent=True) or {}
    try:
        activation_id = _require_int(data, 'activationId')
        player_id = _require_int(data, 'playerId')
        time_taken_ms = _require_number(data, 'timeTakenMs')
        answer = data.get('answer')
        is_correct = data.get('isCorrect')
        if answer is None and not isinstance(is_correct, bool):
            raise ValidationError('answer or isCorrect is required', code='missing_fields')
        if answer is not None:
            # Answer supplied: correctness is decided server-side
            is_correct = None
    except ValidationError as err:
        return _error(err)

    room_id = data.get('roomId')
    if room_id is not None:
        player = db.session.get(Player, player_id)
        if player and str(player.room_id) != str(room_id):
            return _error(ValidationError('roomId does not match player', code='invalid_field'))

    result = ActivationResponseService().submit_response(
        activation_id, player_id, answer, time_taken_ms, is_correct=is_correct,
        player_name=data.get('playerName'),
    )
    if not result.ok:
        return _error(result.error)

    activation = db.session.get(Activation, activation_id)
    broadcast_state_update(_room_code(activation), activation_id)
    return jsonify(result.value.to_dict())
