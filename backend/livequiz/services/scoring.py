import math
from dataclasses import dataclass, replace
from typing import Iterable, Tuple

MAX_POINTS = 100.0
TIME_DECAY_PER_SECOND = 2.0
MIN_POINTS = 10.0
INCORRECT_POINTS = 0


@dataclass(frozen=True)
class PlayerStats:
    score: int = 0
    total_points: int = 0
    correct_answers: int = 0
    total_answers: int = 0
    average_response_time_ms: float = 0.0

    @classmethod
    def from_player(cls, player) -> 'PlayerStats':
        return cls(
            score=player.score or 0,
            total_points=player.total_points or 0,
            correct_answers=player.correct_answers or 0,
            total_answers=player.total_answers or 0,
            average_response_time_ms=player.average_response_time_ms or 0.0,
        )

    def to_dict(self):
        return {
            'totalPoints': self.total_points,
            'correctAnswers': self.correct_answers,
            'totalAnswers': self.total_answers,
            'averageResponseTimeMs': self.average_response_time_ms,
        }


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_elapsed(elapsed_ms) -> float:
    elapsed = float(elapsed_ms or 0)
    # NaN and infinities would poison the running average
    if not math.isfinite(elapsed):
        return 0.0
    return max(0.0, elapsed)


def award(is_correct: bool, elapsed_ms) -> int:
    """Points for one answer: linear decay with response time, floored.

    Wrong answers always score 0. Rounding happens last.
    """
    if not is_correct:
        return INCORRECT_POINTS
    elapsed_seconds = clamp_elapsed(elapsed_ms) / 1000.0
    raw = MAX_POINTS - elapsed_seconds * TIME_DECAY_PER_SECOND
    return _round_half_up(max(MIN_POINTS, raw))


def fold(prev: PlayerStats, points, elapsed_ms, is_correct: bool) -> PlayerStats:
    """Fold one counted answer into running stats in O(1).

    Only plain arithmetic is used on ``prev``'s fields, so the same fold
    can be evaluated over SQL column expressions to build an UPDATE.
    """
    elapsed_ms = clamp_elapsed(elapsed_ms)
    total_answers = prev.total_answers + 1
    return replace(
        prev,
        score=prev.score + points,
        total_points=prev.total_points + points,
        correct_answers=prev.correct_answers + (1 if is_correct else 0),
        total_answers=total_answers,
        average_response_time_ms=(
            (prev.average_response_time_ms * prev.total_answers + elapsed_ms) / total_answers
        ),
    )


def fold_many(stats: PlayerStats, entries: Iterable[Tuple[bool, float]]) -> PlayerStats:
    """Fold a sequence of ``(is_correct, elapsed_ms)`` answers in order."""
    for is_correct, elapsed_ms in entries:
        elapsed = clamp_elapsed(elapsed_ms)
        stats = fold(stats, award(is_correct, elapsed), elapsed, is_correct)
    return stats
