"""
portfolio.py
------------
Single-asset paper portfolio for the position-settlement mode.

Cash and holdings are the only balances; equity is always derived from
them and the last marked price, so it can never go stale.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from typing import Dict, Optional


logger = logging.getLogger(__name__)


@dataclass
class Fill:
    side: str
    price: float
    quantity: float
    notional: float
    profit_loss: Optional[float] = None


@dataclass
class Portfolio:
    starting_cash: float
    cash: float
    holdings: float = 0.0
    latest_price: float = 0.0
    last_buy_price: Optional[float] = None

    @property
    def equity(self) -> float:
        return self.cash + self.holdings * self.latest_price

    @property
    def return_pct(self) -> float:
        if not self.starting_cash:
            return 0.0
        return (self.equity - self.starting_cash) / self.starting_cash * 100


class PortfolioLedger:
    """Applies BUY/SELL decisions to a ``Portfolio``; refusals are silent no-ops."""

    def __init__(
        self,
        starting_cash: float = 10000.0,
        *,
        min_order_size: float = 1000.0,
        stake_fraction: float = 0.5,
    ):
        self.starting_cash = starting_cash
        self.min_order_size = min_order_size
        self.stake_fraction = stake_fraction
        self.portfolio = Portfolio(starting_cash=starting_cash, cash=starting_cash)

    # ------------------------------------------------------------------ #
    # Event hooks
    # ------------------------------------------------------------------ #
    def mark_price(self, price: float) -> None:
        if price and price > 0:
            self.portfolio.latest_price = price

    def apply_buy(self, price: float) -> Optional[Fill]:
        """Invest ``max(min_order_size, cash * stake_fraction)`` at ``price``."""
        p = self.portfolio
        if price <= 0:
            return None
        stake = max(self.min_order_size, p.cash * self.stake_fraction)
        if stake <= 0 or stake > p.cash:
            logger.debug("[Portfolio] BUY skipped: stake %.2f > cash %.2f", stake, p.cash)
            return None

        qty = stake / price
        p.cash -= stake
        p.holdings += qty
        p.last_buy_price = price
        p.latest_price = price

        logger.debug(
            "[Portfolio] BUY qty=%f @ %.4f cash=%.2f equity=%.2f",
            qty, price, p.cash, p.equity,
        )
        return Fill(side="buy", price=price, quantity=qty, notional=stake)

    def apply_sell(self, price: float) -> Optional[Fill]:
        """Liquidate all holdings at ``price``; the fill carries the realised pnl."""
        p = self.portfolio
        if price <= 0:
            return None
        if p.holdings <= 0:
            logger.debug("[Portfolio] SELL skipped: no holdings")
            return None

        qty = p.holdings
        proceeds = qty * price
        pnl = None
        if p.last_buy_price is not None:
            pnl = (price - p.last_buy_price) * qty

        p.cash += proceeds
        p.holdings = 0.0
        p.last_buy_price = None
        p.latest_price = price

        logger.debug(
            "[Portfolio] SELL qty=%f @ %.4f pnl=%s cash=%.2f",
            qty, price, pnl, p.cash,
        )
        return Fill(side="sell", price=price, quantity=qty, notional=proceeds, profit_loss=pnl)

    def reset(self) -> None:
        self.portfolio = Portfolio(starting_cash=self.starting_cash, cash=self.starting_cash)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    @property
    def equity(self) -> float:
        return self.portfolio.equity

    @property
    def return_pct(self) -> float:
        return self.portfolio.return_pct

    def snapshot(self) -> Dict[str, float]:
        """Return a dict ready for logging / JSON."""
        data = asdict(self.portfolio)
        data["equity"] = self.portfolio.equity
        data["return_pct"] = self.portfolio.return_pct
        return data
