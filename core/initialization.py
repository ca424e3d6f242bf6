"""
core/initialization.py
----------------------
Loads configuration from .env, validates it, and wires all runtime
components with simple dependency-injection (DI) overrides.
"""

from __future__ import annotations

import logging
import os
from typing import Dict, List, Optional

from dotenv import load_dotenv

from core.signal_handler import handle_new_decision, handle_resolved_decision
from models.decision import Direction
from modules.advisor import DEFAULT_MODEL, MarketAdvisor
from modules.portfolio import PortfolioLedger
from modules.price_feed import PriceFeed
from modules.session import SimulatorSession
from utils.config_manager import ConfigManager
from utils.config_validator import validate_config
from utils.event_bus import EventBus
from utils.logger import setup_logger


def _env_float(key: str, default: float) -> float:
    raw = os.getenv(key)
    return float(raw) if raw not in (None, "") else default


def _env_int(key: str, default: int) -> int:
    raw = os.getenv(key)
    return int(raw) if raw not in (None, "") else default


def _env_int_list(key: str, default: List[int]) -> List[int]:
    raw = os.getenv(key, "")
    values = [int(v.strip()) for v in raw.split(",") if v.strip()]
    return values or default


def load_configuration(env_path: str = "config.env") -> Dict:
    """
    Load settings from an .env-style file and return a structured config dict.
    """
    log = logging.getLogger(__name__)
    load_dotenv(dotenv_path=env_path)

    conf: Dict[str, object] = {
        "SIM_MODE": os.getenv("SIM_MODE", "binary").strip().lower(),
        "WEBSOCKET_URL": os.getenv("WEBSOCKET_URL", ""),
        "WS_RECONNECT_SECONDS": _env_float("WS_RECONNECT_SECONDS", 3.0),
        "PRICE_HISTORY_SIZE": _env_int("PRICE_HISTORY_SIZE", 150),
        "EXPIRY_SECONDS": _env_int("EXPIRY_SECONDS", 60),
        "EXPIRY_CHOICES": _env_int_list("EXPIRY_CHOICES", [30, 60, 300]),
        "CADENCE_MIN_PERIOD": _env_float("CADENCE_MIN_PERIOD", 5.0),
        "CADENCE_SCALE": _env_float("CADENCE_SCALE", 0.5),
        "TRADE_INTERVAL_SECONDS": _env_float("TRADE_INTERVAL_SECONDS", 10.0),
        "SETTLEMENT_POLL_SECONDS": _env_float("SETTLEMENT_POLL_SECONDS", 0.25),
        "INITIAL_DIRECTION": os.getenv("INITIAL_DIRECTION", "").strip().upper(),
        "STARTING_CASH": _env_float("STARTING_CASH", 10000.0),
        "MIN_ORDER_SIZE": _env_float("MIN_ORDER_SIZE", 1000.0),
        "STAKE_FRACTION": _env_float("STAKE_FRACTION", 0.5),
        "GEMINI": {
            "api_key": os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY"),
            "model": os.getenv("GEMINI_MODEL", DEFAULT_MODEL),
            "timeout": _env_float("ADVISOR_TIMEOUT", 20.0),
        },
        "ADVISOR_REFRESH_SECONDS": _env_float("ADVISOR_REFRESH_SECONDS", 15.0),
        "REPORT_SECONDS": _env_float("REPORT_SECONDS", 60.0),
    }

    log.debug("Parsed SIM_MODE: %s", conf["SIM_MODE"])
    log.debug("Parsed EXPIRY_SECONDS: %s", conf["EXPIRY_SECONDS"])
    return conf


def initialize_components(
    config: Dict,
    overrides: Optional[Dict[str, object]] = None,
) -> Dict[str, object]:
    """
    Construct and wire together all runtime components (supports DI via overrides).

    Keys you can override:
    {"logger", "feed", "ledger", "advisor", "bus", "clock"}
    """
    validate_config(config)
    overrides = overrides or {}
    cfg = ConfigManager(config)

    logger = overrides.get("logger") or setup_logger("Simulator")
    mode = cfg.get_mode()

    feed = overrides.get("feed")
    if feed is None:
        feed = PriceFeed(
            cfg.get_ws_url(),
            history_size=cfg.get_history_size(),
            reconnect_delay=cfg.get_reconnect_delay(),
            logger=setup_logger("PriceFeed"),
        )

    ledger = overrides.get("ledger")
    if ledger is None and mode == "position":
        ledger = PortfolioLedger(
            cfg.get_starting_cash(),
            min_order_size=cfg.get_min_order_size(),
            stake_fraction=cfg.get_stake_fraction(),
        )

    advisor = overrides.get("advisor")
    if advisor is None:
        gemini = cfg.get_gemini()
        advisor = MarketAdvisor(
            gemini.get("api_key"),
            model=gemini.get("model") or DEFAULT_MODEL,
            timeout=float(gemini.get("timeout") or 20.0),
        )

    bus = overrides.get("bus") or EventBus()
    bus.subscribe("decision_created", handle_new_decision)
    bus.subscribe("decision_resolved", handle_resolved_decision)

    initial = cfg.get_initial_direction()
    session_kwargs = {}
    if "clock" in overrides:
        session_kwargs["clock"] = overrides["clock"]

    session = SimulatorSession(
        feed,
        mode=mode,
        expiry_seconds=cfg.get_expiry_seconds(),
        expiry_choices=cfg.get_expiry_choices(),
        min_period=cfg.get_cadence_min_period(),
        period_scale=cfg.get_cadence_scale(),
        trade_interval=cfg.get_trade_interval(),
        settlement_poll=cfg.get_settlement_poll(),
        initial_direction=Direction(initial) if initial else None,
        ledger=ledger,
        advisor=advisor,
        advisor_refresh=cfg.get_advisor_refresh(),
        report_interval=cfg.get_report_interval(),
        bus=bus,
        logger=logger,
        **session_kwargs,
    )

    logger.info("✅ Logger initialized.")
    logger.info("✅ PriceFeed initialized: %s", feed.url)
    logger.info("✅ Session initialized in %s mode.", mode)
    if not advisor.api_key:
        logger.info("ℹ️ GEMINI_API_KEY not set – advisor will report neutral.")

    return {
        "logger": logger,
        "feed": feed,
        "ledger": ledger,
        "advisor": advisor,
        "bus": bus,
        "session": session,
    }
