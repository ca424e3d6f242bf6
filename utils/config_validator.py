_MODES = ("binary", "position")
_POSITIVE_KEYS = (
    "WS_RECONNECT_SECONDS",
    "PRICE_HISTORY_SIZE",
    "EXPIRY_SECONDS",
    "CADENCE_MIN_PERIOD",
    "CADENCE_SCALE",
    "TRADE_INTERVAL_SECONDS",
    "SETTLEMENT_POLL_SECONDS",
    "STARTING_CASH",
)


def validate_config(config: dict):
    mode = str(config.get("SIM_MODE") or "binary").lower()
    if mode not in _MODES:
        raise ValueError(f"SIM_MODE must be one of {_MODES}, got {mode!r}")

    for key in _POSITIVE_KEYS:
        if key in config and config[key] is not None and float(config[key]) <= 0:
            raise ValueError(f"{key} must be positive, got {config[key]!r}")

    choices = config.get("EXPIRY_CHOICES")
    if choices is not None:
        if not isinstance(choices, list) or not choices:
            raise TypeError("EXPIRY_CHOICES must be a non-empty list.")
        expiry = config.get("EXPIRY_SECONDS")
        if mode == "binary" and expiry is not None and int(expiry) not in choices:
            raise ValueError(f"EXPIRY_SECONDS {expiry} not in EXPIRY_CHOICES {choices}")

    fraction = config.get("STAKE_FRACTION")
    if fraction is not None and not 0 < float(fraction) <= 1:
        raise ValueError("STAKE_FRACTION must be in (0, 1].")

    min_order = config.get("MIN_ORDER_SIZE")
    if min_order is not None and float(min_order) < 0:
        raise ValueError("MIN_ORDER_SIZE must not be negative.")

    direction = str(config.get("INITIAL_DIRECTION") or "").upper()
    allowed = ("", "UP", "DOWN") if mode == "binary" else ("", "BUY", "SELL")
    if direction not in allowed:
        raise ValueError(f"INITIAL_DIRECTION {direction!r} invalid for {mode} mode")
