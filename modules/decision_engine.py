"""
decision_engine.py
------------------
Turns cadence ticks into Decisions.

``DecisionEngine`` emits binary signals that strictly alternate UP/DOWN
from a fixed starting polarity; it never looks at price movement.
``PortfolioDecisionEngine`` alternates BUY/SELL and routes every action
through a ``PortfolioLedger`` that may turn it into a no-op.
"""

from __future__ import annotations

import itertools
import logging
from typing import Iterator, List, Optional

from models.decision import Decision, Direction
from modules.portfolio import Fill, PortfolioLedger

logger = logging.getLogger(__name__)


class DecisionStore:
    """Append-only decision log for one session."""

    def __init__(self) -> None:
        self._decisions: List[Decision] = []
        # shared across resets so ids are never handed out twice
        self._ids: Iterator[int] = itertools.count(1)

    def next_id(self) -> int:
        return next(self._ids)

    def append(self, decision: Decision) -> None:
        self._decisions.append(decision)

    def all(self) -> List[Decision]:
        return list(self._decisions)

    def pending(self) -> List[Decision]:
        return [d for d in self._decisions if not d.is_resolved]

    def get(self, decision_id: int) -> Optional[Decision]:
        for d in self._decisions:
            if d.id == decision_id:
                return d
        return None

    def clear(self) -> None:
        self._decisions.clear()

    def __len__(self) -> int:
        return len(self._decisions)

    def __iter__(self):
        return iter(list(self._decisions))


class DecisionEngine:
    def __init__(
        self,
        store: DecisionStore,
        *,
        duration_seconds: float = 60,
        initial_direction: Direction = Direction.UP,
    ):
        self.store = store
        self.duration_seconds = duration_seconds
        self.initial_direction = initial_direction
        self.next_direction = initial_direction

    def generate_decision(self, current_price: float, now: float) -> Optional[Decision]:
        if not current_price or current_price <= 0:
            return None

        decision = Decision(
            id=self.store.next_id(),
            created_at=now,
            direction=self.next_direction,
            entry_price=current_price,
            duration_seconds=self.duration_seconds,
        )
        self.store.append(decision)
        self.next_direction = self.next_direction.opposite
        logger.debug("New %s @ %.2f (id=%s)", decision.direction.label, current_price, decision.id)
        return decision

    def reset(self) -> None:
        self.next_direction = self.initial_direction


class PortfolioDecisionEngine(DecisionEngine):
    """BUY/SELL alternation backed by a cash/holdings ledger."""

    def __init__(
        self,
        store: DecisionStore,
        ledger: PortfolioLedger,
        *,
        initial_direction: Direction = Direction.BUY,
    ):
        super().__init__(store, duration_seconds=None, initial_direction=initial_direction)
        self.ledger = ledger
        self._open_buy: Optional[Decision] = None
        self.last_fill: Optional[Fill] = None

    def generate_decision(self, current_price: float, now: float) -> Optional[Decision]:
        if not current_price or current_price <= 0:
            return None

        direction = self.next_direction
        # alternate even when the ledger refuses the action
        self.next_direction = direction.opposite

        if direction is Direction.BUY:
            return self._buy(current_price, now)
        return self._sell(current_price, now)

    def _buy(self, price: float, now: float) -> Optional[Decision]:
        fill = self.ledger.apply_buy(price)
        if fill is None:
            return None
        decision = Decision(
            id=self.store.next_id(),
            created_at=now,
            direction=Direction.BUY,
            entry_price=price,
            quantity=fill.quantity,
        )
        self.store.append(decision)
        self._open_buy = decision
        self.last_fill = fill
        return decision

    def _sell(self, price: float, now: float) -> Optional[Decision]:
        fill = self.ledger.apply_sell(price)
        if fill is None:
            return None
        paired = self._open_buy
        decision = Decision(
            id=self.store.next_id(),
            created_at=now,
            direction=Direction.SELL,
            entry_price=price,
            quantity=fill.quantity,
            paired_id=paired.id if paired is not None else None,
        )
        self.store.append(decision)
        self._open_buy = None
        self.last_fill = fill
        return decision

    def pair_for(self, sell: Decision) -> Optional[Decision]:
        if sell.paired_id is None:
            return None
        return self.store.get(sell.paired_id)

    def reset(self) -> None:
        super().reset()
        self._open_buy = None
        self.last_fill = None
