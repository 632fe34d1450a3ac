import pytest

from livequiz.services import scoring
from livequiz.services.scoring import PlayerStats, award, fold, fold_many


@pytest.mark.parametrize('elapsed_ms', [0, 1, 5000, 45000, 10 ** 7, -3000])
def test_wrong_answers_score_zero(elapsed_ms):
    assert award(False, elapsed_ms) == 0


def test_award_boundaries():
    assert award(True, 0) == 100
    assert award(True, 5000) == 90
    assert award(True, 45000) == 10
    assert award(True, 120000) == 10
    assert award(True, -2500) == award(True, 0)


def test_award_rounds_half_up():
    # 100 - 0.25 * 2 = 99.5
    assert award(True, 250) == 100
    # 100 - 0.75 * 2 = 98.5
    assert award(True, 750) == 99


def test_award_non_increasing_in_elapsed_time():
    previous = award(True, 0)
    for elapsed_ms in range(0, 60001, 137):
        current = award(True, elapsed_ms)
        assert current <= previous
        assert scoring.MIN_POINTS <= current <= scoring.MAX_POINTS
        previous = current


def test_fold_from_empty_stats():
    stats = fold(PlayerStats(), award(True, 5000), 5000, True)
    assert stats.to_dict() == {
        'totalPoints': 90,
        'correctAnswers': 1,
        'totalAnswers': 1,
        'averageResponseTimeMs': 5000,
    }
    assert stats.score == 90


def test_incremental_fold_matches_batch():
    entries = [(True, 1200), (False, 8000), (True, 30000), (True, 0), (False, 450)]
    one_at_a_time = PlayerStats()
    for is_correct, elapsed in entries:
        one_at_a_time = fold(one_at_a_time, award(is_correct, elapsed), elapsed, is_correct)

    batch = fold_many(PlayerStats(), entries)

    assert one_at_a_time.total_answers == batch.total_answers == 5
    assert one_at_a_time.correct_answers == batch.correct_answers == 3
    assert one_at_a_time.total_points == batch.total_points
    assert one_at_a_time.score == batch.score == batch.total_points
    mean = sum(e for _, e in entries) / len(entries)
    assert batch.average_response_time_ms == pytest.approx(mean)
    assert one_at_a_time.average_response_time_ms == pytest.approx(mean)


def test_fold_many_clamps_negative_elapsed():
    stats = fold_many(PlayerStats(), [(True, -500)])
    assert stats.average_response_time_ms == 0
    assert stats.total_points == 100


@pytest.mark.parametrize('elapsed_ms', [float('nan'), float('inf'), float('-inf')])
def test_non_finite_elapsed_clamps_to_zero(elapsed_ms):
    assert scoring.clamp_elapsed(elapsed_ms) == 0.0
    assert award(True, elapsed_ms) == 100
    stats = fold(PlayerStats(), award(True, elapsed_ms), elapsed_ms, True)
    assert stats.average_response_time_ms == 0
