import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from models.decision import Direction, Outcome
from models.market_analysis import MarketAnalysis
from modules.portfolio import PortfolioLedger
from modules.price_feed import PriceFeed
from modules.session import SimulatorSession
from modules.stats import SessionStats

# ------------------------- Fixtures ------------------------- #

class _Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

@pytest.fixture
def clock():
    return _Clock()

@pytest.fixture
def feed(clock):
    f = PriceFeed("wss://example.invalid/ws", clock=clock)
    f.connected = True
    return f

@pytest.fixture
def session(feed, clock):
    return SimulatorSession(
        feed, expiry_seconds=60, settlement_poll=0.01, report_interval=3600, clock=clock
    )

@pytest.fixture
def position_session(feed, clock):
    return SimulatorSession(
        feed,
        mode="position",
        trade_interval=10,
        ledger=PortfolioLedger(10000.0),
        report_interval=3600,
        clock=clock,
    )

# ------------------------- Tests ------------------------- #

@pytest.mark.asyncio
async def test_binary_round_trip(session, feed, clock):
    resolved = []
    session.bus.subscribe("decision_resolved", resolved.append)

    feed.record(100.0)
    first = session._on_tick()
    clock.now = 10.0
    second = session._on_tick()
    assert (first.direction, second.direction) == (Direction.UP, Direction.DOWN)

    feed.record(105.0)
    clock.now = 60.0
    session.evaluator.poll()

    assert first.outcome is Outcome.WIN
    assert first.close_price == 105.0
    assert second.outcome is Outcome.PENDING
    assert session.stats == SessionStats(wins=1, losses=0, draws=0, total_resolved=1, win_rate=100.0)

    await session.bus.drain()
    assert resolved == [first]
    await session.close()

@pytest.mark.asyncio
async def test_running_session_settles_via_poller(session, feed, clock):
    feed.record(100.0)
    session.start()
    decision = session._on_tick()
    feed.record(99.0)
    clock.now = 61.0
    await asyncio.sleep(0.05)

    assert decision.direction is Direction.UP
    assert decision.outcome is Outcome.LOSS
    assert decision.close_price == 99.0
    assert session.stats.losses == 1
    await session.close()

@pytest.mark.asyncio
async def test_no_decisions_while_feed_disconnected(feed, clock):
    session = SimulatorSession(feed, min_period=0.01, period_scale=0.0001, report_interval=3600, clock=clock)
    feed.connected = False
    feed.record(100.0)
    session.start()
    await asyncio.sleep(0.08)
    assert session.decisions == []

    feed.connected = True
    await asyncio.sleep(0.08)
    await session.close()
    assert len(session.decisions) > 0

@pytest.mark.asyncio
async def test_stop_cancels_every_timer(session, feed):
    feed.record(100.0)
    session.start()
    session.start()  # no duplicate timers
    scheduler = session.scheduler
    session.stop()
    session.stop()

    assert session.running is False
    assert session.scheduler is None
    assert not scheduler.is_active
    assert not session.poller.is_active
    assert not session.report_loop.is_active
    await session.close()

@pytest.mark.asyncio
async def test_reset_restores_initial_state(position_session, feed):
    feed.record(50.0)
    position_session.start()
    position_session._on_tick()
    feed.record(60.0)
    position_session._on_tick()
    feed.record(55.0)
    position_session._on_tick()
    assert position_session.decisions

    position_session.reset()

    assert position_session.running is False
    assert position_session.decisions == []
    assert position_session.stats == SessionStats()
    assert position_session.next_direction is Direction.BUY
    p = position_session.portfolio
    assert (p.cash, p.holdings, p.equity, p.last_buy_price) == (10000.0, 0.0, 10000.0, None)
    await position_session.close()

@pytest.mark.asyncio
async def test_binary_reset_clears_settled_history(session, feed, clock):
    feed.record(100.0)
    session.start()
    session._on_tick()
    clock.now = 10.0
    session._on_tick()
    feed.record(105.0)
    clock.now = 60.0
    session.evaluator.poll()
    assert session.stats.wins == 1

    session.reset()

    assert session.running is False
    assert session.decisions == []
    assert session.stats == SessionStats()
    assert session.next_direction is Direction.UP
    await session.close()

@pytest.mark.asyncio
async def test_position_round_trip(position_session, feed, clock):
    feed.record(50.0)
    buy = position_session._on_tick()
    feed.record(60.0)
    clock.now = 10.0
    sell = position_session._on_tick()

    assert sell.profit_loss == pytest.approx(1000.0)
    assert buy.profit_loss == pytest.approx(1000.0)
    assert buy.closed_at == 10.0
    assert sell.profit_loss == position_session.engine.last_fill.profit_loss
    p = position_session.portfolio
    assert p.cash == pytest.approx(11000.0)
    assert p.holdings == 0
    assert p.equity == p.cash + p.holdings * p.latest_price
    assert position_session.stats.wins == 1
    assert position_session.stats.total_resolved == 1
    await position_session.close()

@pytest.mark.asyncio
async def test_equity_follows_feed(position_session, feed):
    feed.record(50.0)
    position_session._on_tick()
    feed.record(40.0)

    p = position_session.portfolio
    assert p.latest_price == 40.0
    assert p.equity == pytest.approx(5000.0 + 100 * 40.0)
    await position_session.close()

def test_set_cadence_only_while_stopped(session):
    assert session.set_cadence(300) is True
    assert session.expiry_seconds == 300
    assert session.engine.duration_seconds == 300
    assert session.period == 150.0

    session.running = True
    assert session.set_cadence(30) is False
    assert session.expiry_seconds == 300

def test_set_cadence_rejects_unknown_expiry(session):
    with pytest.raises(ValueError):
        session.set_cadence(45)

def test_position_cadence_is_interval(position_session):
    assert position_session.period == 10
    position_session.set_cadence(2.5)
    assert position_session.period == 2.5

@pytest.mark.asyncio
async def test_advice_is_decoration_only(feed, clock):
    advisor = MagicMock()
    advisor.min_points = 10
    advisor.analyze = AsyncMock(return_value=MarketAnalysis(sentiment="bullish", advice="CALLs", confidence=80))
    session = SimulatorSession(feed, advisor=advisor, report_interval=3600, clock=clock)
    for i in range(12):
        feed.record(100.0 + i)

    analysis = await session._fetch_advice()

    assert analysis.sentiment == "bullish"
    assert session.analysis is analysis
    assert session.decisions == []
    assert session.next_direction is Direction.UP
    await session.close()

def test_unknown_mode_rejected(feed):
    with pytest.raises(ValueError):
        SimulatorSession(feed, mode="options")

@pytest.mark.asyncio
async def test_closed_sessions_detach_from_shared_feed(feed, clock):
    first = SimulatorSession(feed, mode="position", ledger=PortfolioLedger(10000.0),
                             report_interval=3600, clock=clock)
    second = SimulatorSession(feed, mode="position", ledger=PortfolioLedger(5000.0),
                              report_interval=3600, clock=clock)
    assert len(feed._listeners) == 2

    await first.close()
    feed.record(80.0)
    assert first.portfolio.latest_price == 0.0
    assert second.portfolio.latest_price == 80.0

    await second.close()
    await second.close()  # closing twice is harmless
    assert feed._listeners == []
