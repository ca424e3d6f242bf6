"""
reporter.py
-----------
Read-only views of a session: the decision log as a DataFrame and a
one-line summary for the periodic log.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

import pandas as pd

from models.decision import Decision
from modules.portfolio import Portfolio
from modules.stats import SessionStats

COLUMNS: List[str] = [
    "id",
    "created_at",
    "direction",
    "entry_price",
    "duration_seconds",
    "quantity",
    "outcome",
    "close_price",
    "closed_at",
    "profit_loss",
]


def decisions_frame(decisions: Iterable[Decision]) -> pd.DataFrame:
    rows = [d.to_dict() for d in decisions]
    if not rows:
        return pd.DataFrame(columns=COLUMNS)
    df = pd.DataFrame(rows)[COLUMNS]
    df["created_at"] = pd.to_datetime(df["created_at"], unit="s")
    df["closed_at"] = pd.to_datetime(df["closed_at"], unit="s")
    return df


def export_csv(decisions: Iterable[Decision], path: str) -> int:
    df = decisions_frame(decisions)
    df.to_csv(path, index=False)
    return len(df)


def summary_line(stats: SessionStats, portfolio: Optional[Portfolio] = None) -> str:
    line = (
        f"📊 Win rate {stats.win_rate:.1f}% | ITM {stats.wins} | OTM {stats.losses} "
        f"| ATM {stats.draws} | resolved {stats.total_resolved}"
    )
    if portfolio is not None:
        line += (
            f" | cash {portfolio.cash:.2f} | holdings {portfolio.holdings:.6f}"
            f" | equity {portfolio.equity:.2f} ({portfolio.return_pct:+.2f}%)"
        )
    return line
