from typing import List, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from livequiz import db
from livequiz.errors import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    Result,
    StateError,
    ValidationError,
)
from livequiz.models import Activation, Player, Response


class VoteLedger:
    """Records responses so that at most one counts per (activation, player).

    No "has this player voted?" read precedes the insert; the unique
    constraint on the response table decides races.
    """

    def __init__(self, session=None):
        self.session = session or db.session

    def record(self, activation_id: int, player_id: int, **fields) -> Result:
        """Insert one Response, mapping a unique-constraint hit to a conflict."""
        response = Response(activation_id=activation_id, player_id=player_id, **fields)
        try:
            self.session.add(response)
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            current_app.logger.info(
                f"[duplicate] activation={activation_id} player={player_id}"
            )
            return Result.failure(ConflictError('You have already responded to this activation'))
        except SQLAlchemyError as exc:
            self.session.rollback()
            current_app.logger.error(
                f"[persist-fail] activation={activation_id} player={player_id} error={exc}"
            )
            return Result.failure(PersistenceError('Failed to record response'))
        return Result.success(response)

    def cast_vote(self, activation_id: int, player_id: int, option_id) -> Result:
        try:
            activation = self.session.get(Activation, activation_id)
            player = self.session.get(Player, player_id)
        except SQLAlchemyError as exc:
            self.session.rollback()
            current_app.logger.error(f"[vote] activation={activation_id} read failed: {exc}")
            return Result.failure(PersistenceError('Failed to read activation'))

        if not activation:
            return Result.failure(NotFoundError('Activation not found'))
        if not player or player.room_id != activation.room_id:
            return Result.failure(NotFoundError('Player not found'))
        if activation.poll_state != 'voting':
            return Result.failure(StateError('Voting is not open for this activation'))
        option = activation.option_by_id(option_id)
        if option is None:
            return Result.failure(ValidationError('Unknown option', code='invalid_option'))

        result = self.record(
            activation.id,
            player.id,
            option_id=option['id'],
            option_text=option.get('text') or '',
            answer=option.get('text') or '',
        )
        if result.ok:
            current_app.logger.info(
                f"[vote] activation={activation.id} player={player.id} option={option['id']}"
            )
        return result

    def responses_for(self, activation_id: int) -> List[Response]:
        return (
            Response.query.filter_by(activation_id=activation_id)
            .order_by(Response.submitted_at, Response.id)
            .all()
        )

    def vote_of(self, activation_id: int, player_id: int) -> Optional[Response]:
        return Response.query.filter_by(activation_id=activation_id, player_id=player_id).first()
