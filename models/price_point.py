from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PricePoint:
    timestamp: float  # epoch seconds
    value: float
