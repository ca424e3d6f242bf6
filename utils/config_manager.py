from typing import Any, Dict, List

DEFAULT_WS_URL = "wss://stream.binance.com:9443/ws/btcusdt@miniTicker"


class ConfigManager:
    def __init__(self, config: Dict[str, Any]):
        self.config = config

    def get(self, key: str, default: Any = None) -> Any:
        return self.config.get(key, default)

    def get_mode(self) -> str:
        return str(self.config.get("SIM_MODE") or "binary").lower()

    def get_ws_url(self) -> str:
        return self.config.get("WEBSOCKET_URL") or DEFAULT_WS_URL

    def get_reconnect_delay(self) -> float:
        return float(self.config.get("WS_RECONNECT_SECONDS", 3))

    def get_history_size(self) -> int:
        return int(self.config.get("PRICE_HISTORY_SIZE", 150))

    def get_expiry_seconds(self) -> int:
        return int(self.config.get("EXPIRY_SECONDS", 60))

    def get_expiry_choices(self) -> List[int]:
        return list(self.config.get("EXPIRY_CHOICES") or [30, 60, 300])

    def get_cadence_min_period(self) -> float:
        return float(self.config.get("CADENCE_MIN_PERIOD", 5.0))

    def get_cadence_scale(self) -> float:
        return float(self.config.get("CADENCE_SCALE", 0.5))

    def get_trade_interval(self) -> float:
        return float(self.config.get("TRADE_INTERVAL_SECONDS", 10))

    def get_settlement_poll(self) -> float:
        return float(self.config.get("SETTLEMENT_POLL_SECONDS", 0.25))

    def get_initial_direction(self) -> str:
        return str(self.config.get("INITIAL_DIRECTION") or "").upper()

    def get_starting_cash(self) -> float:
        return float(self.config.get("STARTING_CASH", 10000.0))

    def get_min_order_size(self) -> float:
        return float(self.config.get("MIN_ORDER_SIZE", 1000.0))

    def get_stake_fraction(self) -> float:
        return float(self.config.get("STAKE_FRACTION", 0.5))

    def get_gemini(self) -> Dict[str, Any]:
        return self.config.get("GEMINI") or {}

    def get_advisor_refresh(self) -> float:
        return float(self.config.get("ADVISOR_REFRESH_SECONDS", 15))

    def get_report_interval(self) -> float:
        return float(self.config.get("REPORT_SECONDS", 60))
