from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from typing import Iterable

from models.decision import Decision, Outcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionStats:
    wins: int = 0
    losses: int = 0
    draws: int = 0
    total_resolved: int = 0
    win_rate: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


def compute_session_stats(decisions: Iterable[Decision]) -> SessionStats:
    wins = losses = draws = 0
    for d in decisions:
        result = d.result
        if result is Outcome.WIN:
            wins += 1
        elif result is Outcome.LOSS:
            losses += 1
        elif result is Outcome.DRAW:
            draws += 1
    total = wins + losses + draws
    win_rate = wins / total * 100 if total else 0.0
    return SessionStats(wins=wins, losses=losses, draws=draws, total_resolved=total, win_rate=win_rate)


class StatsAggregator:
    """Holds the last computed stats; always rebuilt from the full decision log."""

    def __init__(self) -> None:
        self.current = SessionStats()

    def recompute(self, decisions: Iterable[Decision]) -> SessionStats:
        self.current = compute_session_stats(decisions)
        logger.debug("Stats updated: %s", self.current)
        return self.current

    def reset(self) -> None:
        self.current = SessionStats()
