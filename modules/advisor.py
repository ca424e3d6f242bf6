"""
advisor.py
----------
Optional AI market commentary for the live price window.

The advisor sends the most recent prices to Gemini and turns the reply
into a ``MarketAnalysis``. It is decoration only: every failure (missing
key, network error, bad JSON, schema mismatch) is logged and replaced by
a neutral, zero-confidence answer, and nothing it returns is ever fed
back into the decision engine.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Dict, Optional, Sequence

import aiohttp
from pydantic import ValidationError

from models.market_analysis import MarketAnalysis
from models.price_point import PricePoint

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
DEFAULT_MODEL = "gemini-2.5-flash"

WINDOW_SIZE = 30
MISSING_KEY_ADVICE = "API Key missing. Cannot perform AI analysis."
UNAVAILABLE_ADVICE = "Market analysis unavailable."
UNPARSEABLE_ADVICE = "Unable to analyze market conditions at this moment."
NOT_ENOUGH_DATA_ADVICE = "Collecting price data..."

_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "sentiment": {"type": "STRING", "enum": ["bullish", "bearish", "neutral"]},
        "advice": {"type": "STRING"},
        "confidence": {"type": "INTEGER"},
    },
}


class MarketAdvisor:
    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        model: str = DEFAULT_MODEL,
        timeout: float = 20.0,
        min_points: int = 10,
        http_session: Optional[aiohttp.ClientSession] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.min_points = min_points
        self._http_session = http_session

    async def analyze(self, history: Sequence[PricePoint]) -> MarketAnalysis:
        """Never raises; see module docstring."""
        window = list(history)[-WINDOW_SIZE:]
        if len(window) < self.min_points:
            return MarketAnalysis.neutral(NOT_ENOUGH_DATA_ADVICE)
        if not self.api_key:
            return MarketAnalysis.neutral(MISSING_KEY_ADVICE)

        try:
            text = await asyncio.wait_for(self._call_gemini(build_prompt(window)), timeout=self.timeout)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("Gemini API error: %s", exc)
            return MarketAnalysis.neutral(UNAVAILABLE_ADVICE)

        if not text:
            logger.warning("Gemini returned no text")
            return MarketAnalysis.neutral(UNAVAILABLE_ADVICE)
        try:
            return parse_market_analysis(text)
        except Exception as exc:
            logger.error("Unexpected Gemini payload: %s", exc)
            return MarketAnalysis.neutral(UNPARSEABLE_ADVICE)

    async def _call_gemini(self, prompt: str) -> Optional[str]:
        url = GEMINI_URL.format(model=self.model)
        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": _RESPONSE_SCHEMA,
            },
        }

        if self._http_session is not None:
            return await self._post(self._http_session, url, headers, payload)
        async with aiohttp.ClientSession() as session:
            return await self._post(session, url, headers, payload)

    async def _post(self, session, url: str, headers: dict, payload: dict) -> Optional[str]:
        async with session.post(url, json=payload, headers=headers) as resp:
            if resp.status != 200:
                raise Exception(f"HTTP {resp.status}")
            data = await resp.json()

        candidates = data.get("candidates") or []
        if not candidates:
            return None
        parts = candidates[0].get("content", {}).get("parts") or []
        return "".join(p.get("text", "") for p in parts) or None


def build_prompt(window: Sequence[PricePoint]) -> str:
    prices = ", ".join(f"{p.value:.2f}" for p in window)
    current = window[-1].value if window else 0
    return (
        "You are a Binary Options AI Assistant.\n"
        f"Analyze this live sequence of BTC/USD prices (1-second ticks): [{prices}].\n"
        f"Current Price: ${current}.\n\n"
        "The user is looking for short-term reversals or momentum for 30-second "
        "to 1-minute expirations.\n\n"
        "Provide a JSON response:\n"
        '1. sentiment: "bullish" (CALL bias), "bearish" (PUT bias), or "neutral".\n'
        "2. advice: A VERY short, direct command for a binary trader.\n"
        "3. confidence: 0-100."
    )


_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


def parse_market_analysis(text: str) -> MarketAnalysis:
    clean = _FENCE.sub("", text).strip()
    try:
        data = json.loads(clean)
        if not isinstance(data, dict):
            raise ValueError("response is not a JSON object")
        return MarketAnalysis(**data)
    except (ValueError, TypeError, ArithmeticError, ValidationError) as exc:
        logger.error("Failed to parse Gemini response: %s", exc)
        return MarketAnalysis.neutral(UNPARSEABLE_ADVICE)
