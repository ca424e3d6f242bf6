from __future__ import annotations

import math
from typing import Literal

from pydantic import BaseModel, Field, field_validator

Sentiment = Literal["bullish", "bearish", "neutral"]


class MarketAnalysis(BaseModel):
    sentiment: Sentiment = "neutral"
    advice: str = ""
    confidence: int = Field(default=0)

    @field_validator("sentiment", mode="before")
    @classmethod
    def normalize_sentiment(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
        return v

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v):
        v = float(v)
        if not math.isfinite(v):
            raise ValueError("confidence must be a finite number")
        v = int(round(v))
        return max(0, min(100, v))

    @classmethod
    def neutral(cls, advice: str) -> "MarketAnalysis":
        return cls(sentiment="neutral", advice=advice, confidence=0)
