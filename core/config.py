"""
Configuration Management Module

Two kinds of configuration live here:

1. Settings - runtime knobs loaded from environment variables (.env file)
   through Pydantic Settings (log level, reconnect delay, render cadence,
   display preferences).
2. AppConfig - the user's coin list (symbol, icon, quote currency and
   average purchase price) loaded from a JSON file. Adapters receive it
   as an immutable object in connect().

Config File Lookup:
    1. Explicit path (--config flag or CONFIG_PATH)
    2. ./config.json
    3. ~/.coinboard/config.json (created with defaults on first run)

Usage:
    from core.config import settings, load_app_config

    app_config = load_app_config()
    print(settings.ws_reconnect_delay)
"""

import json
from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


CONFIG_DIR = Path.home() / ".coinboard"
CONFIG_FILE_NAME = "config.json"

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
VALID_SORT_KEYS = ["name", "rate"]
VALID_LANGUAGES = ["ko", "en"]
KNOWN_EXCHANGES = ["bithumb", "upbit", "binance"]


class ConfigurationError(ValueError):
    """Raised when the coin config file is missing or malformed."""


class Settings(BaseSettings):
    """
    Application Settings

    Values are automatically loaded from environment variables or .env file.

    Attributes:
        log_level: Logging level
        log_file: Log destination; empty means stdout
        config_path: Explicit coin config path; empty means default lookup
        ws_reconnect_delay: Fixed delay before reconnecting a dropped socket
        ws_open_timeout: Timeout for the WebSocket opening handshake
        ws_ping_interval: Keepalive ping interval
        request_timeout: Timeout for market list HTTP requests
        request_max_retries: Attempts for market list HTTP requests
        render_interval_ms: Quiescence window of the render debounce
        sort_by: Table order ("rate" or "name")
        display_limit: Max rows; 0 fits the table to the terminal height
        default_exchange: Exchange shown at startup
        name_language: Coin name language from the market list ("ko", "en")
        notifications_enabled: Emit change-rate threshold notifications
        notify_step_pct: Change-rate step that triggers a notification
        binance_quote_currency: Quote used on Binance for KRW-quoted coins
    """

    # ============================================
    # Logging
    # ============================================

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    log_file: str = Field(
        default="",
        description="Log file path (empty = stdout)"
    )

    config_path: str = Field(
        default="",
        description="Path to the coin config JSON file"
    )

    # ============================================
    # Connection Configuration
    # ============================================

    ws_reconnect_delay: float = Field(
        default=5.0,
        description="Delay between WebSocket reconnection attempts (seconds)"
    )

    ws_open_timeout: float = Field(
        default=10.0,
        description="WebSocket opening handshake timeout (seconds)"
    )

    ws_ping_interval: float = Field(
        default=20.0,
        description="WebSocket keepalive ping interval (seconds)"
    )

    request_timeout: int = Field(
        default=10,
        description="HTTP request timeout in seconds"
    )

    request_max_retries: int = Field(
        default=3,
        description="Maximum HTTP attempts for market list requests"
    )

    # ============================================
    # Display Configuration
    # ============================================

    render_interval_ms: int = Field(
        default=100,
        description="Render debounce window in milliseconds"
    )

    sort_by: str = Field(
        default="rate",
        description="Sort order of the table (rate, name)"
    )

    display_limit: int = Field(
        default=0,
        description="Maximum rows to display (0 = fit terminal height)"
    )

    default_exchange: str = Field(
        default="bithumb",
        description="Exchange shown at startup"
    )

    name_language: str = Field(
        default="ko",
        description="Language of coin names (ko, en)"
    )

    # ============================================
    # Notifications
    # ============================================

    notifications_enabled: bool = Field(
        default=True,
        description="Emit notifications when change rate crosses a step"
    )

    notify_step_pct: float = Field(
        default=5.0,
        description="Change rate step (percent) for notifications"
    )

    # ============================================
    # Exchange Specific
    # ============================================

    binance_quote_currency: str = Field(
        default="USDT",
        description="Quote currency used on Binance for KRW-quoted coins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False
    )

    @property
    def render_interval(self) -> float:
        """Render debounce window in seconds."""
        return self.render_interval_ms / 1000.0


settings = Settings()


# ============================================
# Coin Configuration (user portfolio)
# ============================================

class CoinConfig(BaseModel):
    """
    One tracked coin.

    Example:
        {"symbol": "BTC", "icon": "₿", "unit_currency": "KRW",
         "averagePurchasePrice": 95000000}
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    symbol: str
    icon: str = " "
    unit_currency: str = "KRW"
    average_purchase_price: float = Field(default=0.0, alias="averagePurchasePrice")

    @property
    def market_symbol(self) -> str:
        """Canonical BASE_QUOTE symbol (e.g., "BTC_KRW")."""
        return f"{self.symbol.upper()}_{self.unit_currency.upper()}"


class AppConfig(BaseModel):
    """Immutable user configuration handed to every adapter's connect()."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    coins: Tuple[CoinConfig, ...] = ()
    api_key: Optional[str] = None
    secret_key: Optional[str] = None

    def coin_for(self, base: str, quote: str) -> Optional[CoinConfig]:
        """Find the coin entry for a base/quote pair (case-insensitive)."""
        base = base.upper()
        quote = quote.upper()
        for coin in self.coins:
            if coin.symbol.upper() == base and coin.unit_currency.upper() == quote:
                return coin
        return None


DEFAULT_COINS: List[dict] = [
    {"symbol": "BTC", "icon": "₿", "unit_currency": "KRW", "averagePurchasePrice": 0},
    {"symbol": "ETH", "icon": "Ξ", "unit_currency": "KRW", "averagePurchasePrice": 0},
    {"symbol": "XRP", "icon": "✕", "unit_currency": "KRW", "averagePurchasePrice": 0},
    {"symbol": "SOL", "icon": "◎", "unit_currency": "KRW", "averagePurchasePrice": 0},
    {"symbol": "DOGE", "icon": "Ð", "unit_currency": "KRW", "averagePurchasePrice": 0},
    {"symbol": "ADA", "icon": "₳", "unit_currency": "KRW", "averagePurchasePrice": 0},
    {"symbol": "TRX", "icon": "T", "unit_currency": "KRW", "averagePurchasePrice": 0},
    {"symbol": "LINK", "icon": "⬡", "unit_currency": "KRW", "averagePurchasePrice": 0},
    {"symbol": "AVAX", "icon": "A", "unit_currency": "KRW", "averagePurchasePrice": 0},
    {"symbol": "DOT", "icon": "●", "unit_currency": "KRW", "averagePurchasePrice": 0},
]


def config_search_paths(path: Optional[str] = None) -> List[Path]:
    """
    Candidate config file locations, in lookup order.

    Args:
        path: Explicit path; when given it is the only candidate
    """
    if path:
        return [Path(path).expanduser()]
    return [Path.cwd() / CONFIG_FILE_NAME, CONFIG_DIR / CONFIG_FILE_NAME]


def ensure_config_file(config_dir: Path = CONFIG_DIR) -> Optional[Path]:
    """
    Create ~/.coinboard/config.json with the default coin list if no config exists.

    Returns:
        Path of the created file, or None if a config was already present

    Raises:
        ConfigurationError: If the file cannot be written
    """
    from core.logging import logger

    target = config_dir / CONFIG_FILE_NAME
    if (Path.cwd() / CONFIG_FILE_NAME).exists() or target.exists():
        return None

    try:
        config_dir.mkdir(parents=True, exist_ok=True)
        target.write_text(
            json.dumps({"coins": DEFAULT_COINS}, ensure_ascii=False, indent=2),
            encoding="utf-8"
        )
    except OSError as e:
        raise ConfigurationError(f"Could not create default config at {target}: {e}") from e

    logger.info(f"Default config file created at {target}")
    return target


def load_app_config(path: Optional[str] = None) -> AppConfig:
    """
    Load and validate the coin config file.

    Args:
        path: Explicit config path (optional)

    Returns:
        AppConfig: Parsed immutable configuration

    Raises:
        ConfigurationError: If no file is found, or it is not valid JSON,
                            or it doesn't match the expected shape
    """
    candidates = config_search_paths(path)
    config_file = next((p for p in candidates if p.exists()), None)

    if config_file is None:
        searched = ", ".join(str(p) for p in candidates)
        raise ConfigurationError(f"'{CONFIG_FILE_NAME}' not found. Searched: {searched}")

    try:
        raw = json.loads(config_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Could not parse '{config_file}': {e}") from e

    try:
        return AppConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config in '{config_file}': {e}") from e


# ============================================
# Configuration Validation
# ============================================

def validate_configuration() -> None:
    """
    Validate critical configuration settings on application startup.

    Raises:
        ValueError: If a setting is invalid
    """
    # Import logger here to avoid circular import
    # (logging.py imports config.py, so we can't import at module level)
    from core.logging import logger

    if settings.log_level.upper() not in VALID_LOG_LEVELS:
        raise ValueError(
            f"Invalid LOG_LEVEL: '{settings.log_level}'. "
            f"Must be one of: {', '.join(VALID_LOG_LEVELS)}"
        )

    if settings.sort_by not in VALID_SORT_KEYS:
        raise ValueError(
            f"Invalid SORT_BY: '{settings.sort_by}'. "
            f"Must be one of: {', '.join(VALID_SORT_KEYS)}"
        )

    if settings.display_limit < 0:
        raise ValueError(f"Invalid DISPLAY_LIMIT: {settings.display_limit}. Must be >= 0")

    if settings.ws_reconnect_delay <= 0:
        raise ValueError(f"Invalid WS_RECONNECT_DELAY: {settings.ws_reconnect_delay}. Must be > 0")

    if settings.render_interval_ms <= 0:
        raise ValueError(f"Invalid RENDER_INTERVAL_MS: {settings.render_interval_ms}. Must be > 0")

    if settings.notify_step_pct <= 0:
        raise ValueError(f"Invalid NOTIFY_STEP_PCT: {settings.notify_step_pct}. Must be > 0")

    if settings.name_language not in VALID_LANGUAGES:
        raise ValueError(
            f"Invalid NAME_LANGUAGE: '{settings.name_language}'. "
            f"Must be one of: {', '.join(VALID_LANGUAGES)}"
        )

    if settings.default_exchange.lower() not in KNOWN_EXCHANGES:
        raise ValueError(
            f"Invalid DEFAULT_EXCHANGE: '{settings.default_exchange}'. "
            f"Must be one of: {', '.join(KNOWN_EXCHANGES)}"
        )

    logger.info("Configuration validated successfully")
    logger.info(f"Default exchange: {settings.default_exchange}")
    logger.info(f"Reconnect delay: {settings.ws_reconnect_delay}s")
    logger.info(f"Render interval: {settings.render_interval_ms}ms")
    logger.info(f"Sort: {settings.sort_by} | Limit: {settings.display_limit or 'auto'}")
    logger.info(f"Log level: {settings.log_level.upper()}")
