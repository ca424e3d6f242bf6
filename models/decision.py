# --------------------------------------------------------------------
# models/decision.py
# One simulated market action (binary "signal" or position "trade") and
# its write-once resolution.
# --------------------------------------------------------------------
from __future__ import annotations

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional


class Direction(str, Enum):
    UP = "UP"        # CALL
    DOWN = "DOWN"    # PUT
    BUY = "BUY"
    SELL = "SELL"

    @property
    def opposite(self) -> "Direction":
        return _OPPOSITES[self]

    @property
    def label(self) -> str:
        """Binary-options wording for UP/DOWN, unchanged for BUY/SELL."""
        return {"UP": "CALL", "DOWN": "PUT"}.get(self.value, self.value)


_OPPOSITES = {
    Direction.UP: Direction.DOWN,
    Direction.DOWN: Direction.UP,
    Direction.BUY: Direction.SELL,
    Direction.SELL: Direction.BUY,
}


class Outcome(str, Enum):
    PENDING = "PENDING"
    WIN = "ITM"      # in the money
    LOSS = "OTM"     # out of the money
    DRAW = "ATM"     # at the money
    SETTLED = "SETTLED"  # position trade closed, see profit_loss


class DecisionAlreadyResolved(RuntimeError):
    """Raised when a resolved decision is asked to resolve again."""


@dataclass
class Decision:
    id: int
    created_at: float  # epoch seconds
    direction: Direction
    entry_price: float
    duration_seconds: Optional[float] = None
    quantity: float = 0.0
    paired_id: Optional[int] = None
    outcome: Outcome = Outcome.PENDING
    close_price: Optional[float] = None
    closed_at: Optional[float] = None
    profit_loss: Optional[float] = None

    @property
    def is_resolved(self) -> bool:
        return self.outcome is not Outcome.PENDING

    @property
    def expires_at(self) -> Optional[float]:
        if self.duration_seconds is None:
            return None
        return self.created_at + self.duration_seconds

    def is_mature(self, now: float) -> bool:
        expires_at = self.expires_at
        return expires_at is not None and now >= expires_at

    @property
    def result(self) -> Optional[Outcome]:
        """
        Win/Loss/Draw classification used by the session stats.

        Binary decisions report their outcome. A closing SELL reports the
        sign of its realised pnl; BUY legs are never counted so a round
        trip only scores once.
        """
        if self.outcome in (Outcome.WIN, Outcome.LOSS, Outcome.DRAW):
            return self.outcome
        if (
            self.outcome is Outcome.SETTLED
            and self.direction is Direction.SELL
            and self.profit_loss is not None
        ):
            if self.profit_loss > 0:
                return Outcome.WIN
            if self.profit_loss < 0:
                return Outcome.LOSS
            return Outcome.DRAW
        return None

    def resolve(
        self,
        outcome: Outcome,
        close_price: float,
        closed_at: float,
        profit_loss: Optional[float] = None,
    ) -> None:
        if self.is_resolved:
            raise DecisionAlreadyResolved(f"decision {self.id} already {self.outcome.value}")
        if outcome is Outcome.PENDING:
            raise ValueError("cannot resolve a decision to PENDING")
        self.outcome = outcome
        self.close_price = close_price
        self.closed_at = closed_at
        self.profit_loss = profit_loss

    def to_dict(self) -> dict:
        data = asdict(self)
        data["direction"] = self.direction.value
        data["outcome"] = self.outcome.value
        return data
