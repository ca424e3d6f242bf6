"""
session.py
----------
Owns one simulation session: the decision log, the engine, settlement,
stats, the optional portfolio and every timer that drives them.

All timers live on this object. ``start()`` acquires them, ``stop()``
cancels them (idempotent) and ``reset()`` returns the session to its
initial state. Every handler that mutates shared state runs to
completion without awaiting, so the single event loop serializes them.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, List, Optional, Sequence

from models.decision import Decision, Direction
from models.market_analysis import MarketAnalysis
from models.price_point import PricePoint
from modules.advisor import MarketAdvisor
from modules.cadence import CadenceScheduler, PeriodicTask, binary_period
from modules.decision_engine import DecisionEngine, DecisionStore, PortfolioDecisionEngine
from modules.portfolio import Portfolio, PortfolioLedger
from modules.price_feed import PriceFeed
from modules.reporter import summary_line
from modules.settlement import SettlementEvaluator
from modules.stats import SessionStats, StatsAggregator
from utils.event_bus import EventBus

BINARY = "binary"
POSITION = "position"


class SimulatorSession:
    def __init__(
        self,
        feed: PriceFeed,
        *,
        mode: str = BINARY,
        expiry_seconds: int = 60,
        expiry_choices: Sequence[int] = (30, 60, 300),
        min_period: float = 5.0,
        period_scale: float = 0.5,
        trade_interval: float = 10.0,
        settlement_poll: float = 0.25,
        initial_direction: Optional[Direction] = None,
        ledger: Optional[PortfolioLedger] = None,
        advisor: Optional[MarketAdvisor] = None,
        advisor_refresh: float = 15.0,
        report_interval: float = 60.0,
        bus: Optional[EventBus] = None,
        clock: Callable[[], float] = time.time,
        logger: Optional[logging.Logger] = None,
    ):
        if mode not in (BINARY, POSITION):
            raise ValueError(f"unknown mode {mode!r}")

        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.feed = feed
        self.mode = mode
        self.clock = clock
        self.bus = bus or EventBus()

        self.expiry_seconds = expiry_seconds
        self.expiry_choices = list(expiry_choices)
        self.min_period = min_period
        self.period_scale = period_scale
        self.trade_interval = trade_interval

        self.store = DecisionStore()
        self.stats_aggregator = StatsAggregator()
        self.ledger: Optional[PortfolioLedger] = None

        if mode == POSITION:
            self.ledger = ledger or PortfolioLedger()
            self.engine: DecisionEngine = PortfolioDecisionEngine(
                self.store, self.ledger, initial_direction=initial_direction or Direction.BUY
            )
            self.feed.add_listener(self._mark_price)
        else:
            self.engine = DecisionEngine(
                self.store,
                duration_seconds=expiry_seconds,
                initial_direction=initial_direction or Direction.UP,
            )

        self.evaluator = SettlementEvaluator(
            self.store,
            price_source=lambda: self.feed.latest_price,
            clock=self.clock,
            on_resolved=self._on_resolved,
        )

        self.advisor = advisor
        self.analysis: Optional[MarketAnalysis] = None
        self._advice_task: Optional[asyncio.Task] = None

        self.running = False
        self.scheduler: Optional[CadenceScheduler] = None
        self.poller = PeriodicTask("SettlementPoller", self.evaluator.poll, settlement_poll)
        self.advisor_loop = PeriodicTask(
            "AdvisorLoop", self._refresh_advice, advisor_refresh, gate=self._advice_ready
        )
        self.report_loop = PeriodicTask("Reporter", self.log_summary, report_interval)

    # ------------------------------------------------------------------ #
    # Read accessors
    # ------------------------------------------------------------------ #
    @property
    def period(self) -> float:
        if self.mode == POSITION:
            return self.trade_interval
        return binary_period(self.expiry_seconds, self.min_period, self.period_scale)

    @property
    def stats(self) -> SessionStats:
        return self.stats_aggregator.current

    @property
    def decisions(self) -> List[Decision]:
        return self.store.all()

    @property
    def portfolio(self) -> Optional[Portfolio]:
        return self.ledger.portfolio if self.ledger else None

    @property
    def next_direction(self) -> Direction:
        return self.engine.next_direction

    # ------------------------------------------------------------------ #
    # Control surface
    # ------------------------------------------------------------------ #
    def start(self) -> None:
        if self.running:
            return
        self.running = True
        self.scheduler = CadenceScheduler(
            self._on_tick,
            is_running=lambda: self.running,
            is_connected=lambda: self.feed.connected,
            current_price=lambda: self.feed.latest_price,
            period=self.period,
        )
        self.scheduler.start()
        if self.mode == BINARY:
            self.poller.start()
        if self.advisor is not None:
            self.advisor_loop.start()
        self.report_loop.start()
        self.logger.info("▶️ Session started (%s, every %.1fs)", self.mode, self.period)

    def stop(self) -> None:
        was_running = self.running
        self.running = False
        if self.scheduler is not None:
            self.scheduler.stop()
            self.scheduler = None
        self.poller.stop()
        self.advisor_loop.stop()
        self.report_loop.stop()
        if self._advice_task is not None:
            self._advice_task.cancel()
            self._advice_task = None
        if was_running:
            self.logger.info("⏹️ Session stopped")

    def reset(self) -> None:
        self.stop()
        self.store.clear()
        self.engine.reset()
        self.stats_aggregator.reset()
        if self.ledger is not None:
            self.ledger.reset()
        self.analysis = None
        self.logger.info("🔄 Session reset")

    def set_cadence(self, value: float) -> bool:
        """Change expiry (binary) or trade interval (position); stopped sessions only."""
        if self.running:
            self.logger.warning("Cadence change to %s ignored while running", value)
            return False
        if value <= 0:
            raise ValueError(f"cadence must be positive, got {value}")
        if self.mode == BINARY:
            if self.expiry_choices and value not in self.expiry_choices:
                raise ValueError(f"expiry {value} not in {self.expiry_choices}")
            self.expiry_seconds = int(value)
            self.engine.duration_seconds = self.expiry_seconds
        else:
            self.trade_interval = float(value)
        self.logger.info("⏲️ Cadence set to %s (period %.1fs)", value, self.period)
        return True

    # ------------------------------------------------------------------ #
    # Runtime
    # ------------------------------------------------------------------ #
    def open(self) -> None:
        self.feed.start()

    async def close(self) -> None:
        self.stop()
        if self.mode == POSITION:
            self.feed.remove_listener(self._mark_price)
        await self.feed.graceful_shutdown()
        await self.bus.close()

    async def run(self) -> None:
        self.open()
        self.start()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.logger.info("Session cancelled – shutting down")
        finally:
            await self.close()

    # ------------------------------------------------------------------ #
    # Handlers
    # ------------------------------------------------------------------ #
    def _on_tick(self) -> Optional[Decision]:
        decision = self.engine.generate_decision(self.feed.latest_price, self.clock())
        if decision is None:
            return None
        self.bus.publish("decision_created", decision)
        if self.mode == POSITION and decision.direction is Direction.SELL:
            self.evaluator.settle_position(
                decision, self.engine.pair_for(decision), self.engine.last_fill.profit_loss
            )
        return decision

    def _on_resolved(self, resolved: List[Decision]) -> None:
        self.stats_aggregator.recompute(self.store)
        for decision in resolved:
            self.bus.publish("decision_resolved", decision)

    def _mark_price(self, point: PricePoint) -> None:
        if self.ledger is not None:
            self.ledger.mark_price(point.value)

    def _advice_ready(self) -> bool:
        return (
            self.running
            and self.advisor is not None
            and len(self.feed.history) > self.advisor.min_points
        )

    def _refresh_advice(self) -> None:
        if self._advice_task is not None and not self._advice_task.done():
            return
        self._advice_task = asyncio.create_task(self._fetch_advice())

    async def _fetch_advice(self) -> MarketAnalysis:
        analysis = await self.advisor.analyze(list(self.feed.history))
        self.analysis = analysis
        self.logger.info(
            "🤖 %s (%s%%): %s", analysis.sentiment.upper(), analysis.confidence, analysis.advice
        )
        return analysis

    def log_summary(self) -> None:
        self.logger.info(summary_line(self.stats, self.portfolio))
