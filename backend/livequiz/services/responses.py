from dataclasses import dataclass
from typing import Optional

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from livequiz import db
from livequiz.errors import NotFoundError, PersistenceError, Result, StateError
from livequiz.models import Activation, Player
from livequiz.services import answers, scoring
from livequiz.services.ledger import VoteLedger


@dataclass
class ResponseOutcome:
    is_correct: bool
    points_awarded: int
    new_score: int
    stats: scoring.PlayerStats

    def to_dict(self):
        return {
            'success': True,
            'isCorrect': self.is_correct,
            'pointsAwarded': self.points_awarded,
            'newScore': self.new_score,
            'stats': self.stats.to_dict(),
        }


# Column-side view of PlayerStats; folding over it yields UPDATE expressions
_STATS_COLUMNS = scoring.PlayerStats(
    score=Player.score,
    total_points=Player.total_points,
    correct_answers=Player.correct_answers,
    total_answers=Player.total_answers,
    average_response_time_ms=Player.average_response_time_ms,
)


class ActivationResponseService:
    """Validate, score and record a participant's answer in one call."""

    def __init__(self, session=None, ledger: Optional[VoteLedger] = None):
        self.session = session or db.session
        self.ledger = ledger or VoteLedger(self.session)

    def submit_response(self, activation_id: int, player_id: int, answer,
                        elapsed_ms, is_correct: Optional[bool] = None, player_name=None) -> Result:
        """Process one submission.

        ``answer`` is the raw text answer, or the chosen option's id or text. When
        ``is_correct`` is given the caller has already validated the answer
        and ``answer`` may be None. ``player_name`` only feeds the log line.
        """
        try:
            activation = self.session.get(Activation, activation_id)
            player = self.session.get(Player, player_id)
        except SQLAlchemyError as exc:
            self.session.rollback()
            current_app.logger.error(f"[score] activation={activation_id} read failed: {exc}")
            return Result.failure(PersistenceError('Failed to fetch activation or player'))

        if not activation:
            return Result.failure(NotFoundError('Activation not found'))
        if not player or player.room_id != activation.room_id:
            return Result.failure(NotFoundError('Player not found'))
        if activation.poll_state != 'voting':
            return Result.failure(StateError(f'This activation is {activation.poll_state}, not accepting answers'))

        if activation.type == 'poll':
            return self._cast_poll_vote(activation, player, answer)

        elapsed = scoring.clamp_elapsed(elapsed_ms)
        if is_correct is None:
            is_correct = answers.validate(activation, answer)
        is_correct = bool(is_correct)
        points = scoring.award(is_correct, elapsed)

        option = answers.match_option(activation.options, answer)
        recorded = self.ledger.record(
            activation.id,
            player.id,
            option_id=str(option['id']) if option else None,
            option_text=option.get('text') if option else None,
            answer=None if answer is None else str(answer),
            is_correct=is_correct,
            points_awarded=points,
            time_taken_ms=elapsed,
        )
        if not recorded.ok:
            return recorded

        values = scoring.fold(_STATS_COLUMNS, points, elapsed, is_correct)
        try:
            self.session.execute(
                update(Player)
                .where(Player.id == player.id)
                .values(
                    score=values.score,
                    total_points=values.total_points,
                    correct_answers=values.correct_answers,
                    total_answers=values.total_answers,
                    average_response_time_ms=values.average_response_time_ms,
                )
                .execution_options(synchronize_session=False)
            )
            self.session.commit()
            self.session.refresh(player)
        except SQLAlchemyError as exc:
            self.session.rollback()
            current_app.logger.error(f"[score] player={player.id} update failed: {exc}")
            return Result.failure(PersistenceError('Failed to update player score'))

        stats = scoring.PlayerStats.from_player(player)
        current_app.logger.info(
            f"[score] activation={activation.id} player={player.id} name={player_name or player.name} "
            f"correct={is_correct} elapsed_ms={elapsed:.0f} points={points} new_score={stats.score}"
        )
        return Result.success(ResponseOutcome(is_correct, points, stats.score, stats))

    def _cast_poll_vote(self, activation, player, option_id) -> Result:
        # Polls only feed tallies; PlayerStats stay untouched
        voted = self.ledger.cast_vote(activation.id, player.id, option_id)
        if not voted.ok:
            return voted
        stats = scoring.PlayerStats.from_player(player)
        return Result.success(ResponseOutcome(False, 0, stats.score, stats))
