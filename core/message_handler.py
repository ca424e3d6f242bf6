"""
message_handler.py
==================
Validation of inbound WebSocket *ticker* messages. A tick is accepted only
when it decodes to a JSON object carrying a finite, positive price under
one of the known keys; anything else is dropped with a warning so a single
corrupt frame can never poison the feed's last price.
"""
from __future__ import annotations

import json
import logging
import math
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------
# "c" is the close price of a Binance miniTicker frame; "price" is the
# generic `{price: number}` shape.
_PRICE_KEYS = ("c", "price")


def _decode(raw: Union[str, bytes, Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if isinstance(raw, dict):
        return raw
    try:
        msg = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("❌ Malformed WS payload: %r", raw)
        return None
    if not isinstance(msg, dict):
        logger.warning("❌ Tick payload must be an object: %r", msg)
        return None
    return msg


def _coerce_price(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(price) or price <= 0:
        return None
    return price


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_tick(raw: Union[str, bytes, Dict[str, Any]]) -> Optional[float]:
    """Return the price carried by ``raw`` or ``None`` if the tick is unusable."""
    msg = _decode(raw)
    if msg is None:
        return None

    for key in _PRICE_KEYS:
        if key in msg:
            price = _coerce_price(msg[key])
            if price is None:
                logger.warning("❌ Non-numeric or non-positive %s value: %r", key, msg[key])
            return price

    logger.debug("⏭️ Payload without price skipped: %s", msg)
    return None
