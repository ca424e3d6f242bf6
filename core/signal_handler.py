from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

from models.decision import Decision, Outcome
from utils.logger import setup_logger

logger = setup_logger(__name__)


async def handle_new_decision(
    decision: Decision,
    *,
    format_fn: Optional[Callable[[Decision], str]] = None,
) -> None:
    format_fn = format_fn or _format_new
    logger.info("🚀 %s", format_fn(decision))


async def handle_resolved_decision(
    decision: Decision,
    *,
    format_fn: Optional[Callable[[Decision], str]] = None,
) -> None:
    format_fn = format_fn or _format_resolved
    logger.info("🏁 %s", format_fn(decision))


def _ts(epoch: Optional[float]) -> str:
    if epoch is None:
        return "-"
    return datetime.fromtimestamp(epoch, tz=timezone.utc).strftime("%H:%M:%S UTC")


def _format_new(d: Decision) -> str:
    expiry = f" | expiry {d.duration_seconds:g}s" if d.duration_seconds else ""
    qty = f" | qty {d.quantity:.6f}" if d.quantity else ""
    return f"#{d.id} {d.direction.label} @ {d.entry_price}{expiry}{qty} | {_ts(d.created_at)}"


def _format_resolved(d: Decision) -> str:
    if d.outcome is Outcome.SETTLED:
        pnl = "n/a" if d.profit_loss is None else f"{d.profit_loss:+.2f}"
        return f"#{d.id} {d.direction.label} closed @ {d.close_price} | pnl {pnl} | {_ts(d.closed_at)}"
    return (
        f"#{d.id} {d.direction.label} {d.entry_price} → {d.close_price} "
        f"| {d.outcome.value} | {_ts(d.closed_at)}"
    )
