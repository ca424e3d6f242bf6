"""
settlement.py
-------------
Resolves open decisions.

* Binary decisions are polled: once ``now >= created_at + duration`` the
  decision closes at whatever price the feed holds at that moment.
* Position decisions settle synchronously when a SELL closes the most
  recent BUY.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from models.decision import Decision, Direction, Outcome
from modules.decision_engine import DecisionStore

logger = logging.getLogger(__name__)


def binary_outcome(direction: Direction, entry: float, close: float) -> Outcome:
    if close == entry:
        return Outcome.DRAW
    up = close > entry
    if direction is Direction.UP:
        return Outcome.WIN if up else Outcome.LOSS
    return Outcome.LOSS if up else Outcome.WIN


class SettlementEvaluator:
    def __init__(
        self,
        store: DecisionStore,
        price_source: Callable[[], float],
        clock: Callable[[], float],
        on_resolved: Optional[Callable[[List[Decision]], None]] = None,
    ):
        self.store = store
        self.price_source = price_source
        self.clock = clock
        self.on_resolved = on_resolved

    def poll(self) -> List[Decision]:
        """One settlement pass; reads the live price, never a cached one."""
        return self.evaluate(self.clock(), self.price_source())

    def evaluate(self, now: float, price: float) -> List[Decision]:
        if not price or price <= 0:
            return []

        resolved: List[Decision] = []
        for decision in self.store.pending():
            if decision.duration_seconds is None or not decision.is_mature(now):
                continue
            outcome = binary_outcome(decision.direction, decision.entry_price, price)
            decision.resolve(outcome, close_price=price, closed_at=now)
            resolved.append(decision)
            logger.info(
                "⏱️ %s #%s %.2f → %.2f : %s",
                decision.direction.label, decision.id,
                decision.entry_price, price, outcome.name,
            )

        if resolved and self.on_resolved:
            self.on_resolved(resolved)
        return resolved

    def settle_position(
        self,
        sell: Decision,
        paired_buy: Optional[Decision],
        profit_loss: Optional[float],
    ) -> List[Decision]:
        """Close ``paired_buy`` against ``sell`` and record ``profit_loss`` on both.

        ``profit_loss`` is the ledger's figure from the SELL fill; it is
        recorded as given and never recomputed here.
        """
        now = sell.created_at
        price = sell.entry_price
        resolved: List[Decision] = []

        if paired_buy is None or paired_buy.is_resolved:
            logger.warning("SELL #%s has no open BUY to pair; pnl not attributed", sell.id)
            pnl = None
        else:
            pnl = profit_loss
            paired_buy.resolve(Outcome.SETTLED, close_price=price, closed_at=now, profit_loss=pnl)
            resolved.append(paired_buy)

        sell.resolve(Outcome.SETTLED, close_price=price, closed_at=now, profit_loss=pnl)
        resolved.append(sell)
        logger.info("💰 SELL #%s @ %.2f pnl=%s", sell.id, price, "n/a" if pnl is None else f"{pnl:.2f}")

        if self.on_resolved:
            self.on_resolved(resolved)
        return resolved
