import itertools

import pytest

from models.decision import Decision, Direction, Outcome
from modules.stats import SessionStats, StatsAggregator, compute_session_stats


def _decision(i, outcome=Outcome.PENDING, direction=Direction.UP, pnl=None):
    d = Decision(id=i, created_at=0.0, direction=direction, entry_price=100.0, duration_seconds=60)
    if outcome is not Outcome.PENDING:
        d.resolve(outcome, close_price=100.0, closed_at=60.0, profit_loss=pnl)
    return d


def test_empty_store_has_zero_win_rate():
    stats = compute_session_stats([])
    assert stats == SessionStats()
    assert stats.win_rate == 0

def test_pending_only_counts_nothing():
    stats = compute_session_stats([_decision(1), _decision(2)])
    assert stats.total_resolved == 0
    assert stats.win_rate == 0

def test_counts_and_win_rate():
    ds = [
        _decision(1, Outcome.WIN),
        _decision(2, Outcome.WIN),
        _decision(3, Outcome.LOSS),
        _decision(4, Outcome.DRAW),
        _decision(5),
    ]
    stats = compute_session_stats(ds)

    assert (stats.wins, stats.losses, stats.draws) == (2, 1, 1)
    assert stats.total_resolved == 4
    assert stats.win_rate == pytest.approx(50.0)

@pytest.mark.parametrize("combo", list(itertools.product(
    [Outcome.PENDING, Outcome.WIN, Outcome.LOSS, Outcome.DRAW], repeat=3
)))
def test_stats_consistency(combo):
    stats = compute_session_stats([_decision(i, o) for i, o in enumerate(combo)])

    assert stats.wins + stats.losses + stats.draws == stats.total_resolved
    if stats.total_resolved == 0:
        assert stats.win_rate == 0
    else:
        assert stats.win_rate == pytest.approx(stats.wins / stats.total_resolved * 100)

def test_position_round_trip_counted_once():
    buy = _decision(1, Outcome.SETTLED, direction=Direction.BUY, pnl=-20.0)
    sell = _decision(2, Outcome.SETTLED, direction=Direction.SELL, pnl=-20.0)
    flat = _decision(3, Outcome.SETTLED, direction=Direction.SELL, pnl=0.0)

    stats = compute_session_stats([buy, sell, flat])

    assert (stats.wins, stats.losses, stats.draws) == (0, 1, 1)

def test_aggregator_recompute_and_reset():
    agg = StatsAggregator()
    agg.recompute([_decision(1, Outcome.WIN)])
    assert agg.current.wins == 1
    assert agg.current.win_rate == 100.0

    agg.reset()
    assert agg.current == SessionStats()
