"""
Unified Logging Configuration

This module sets up a centralized logging system for the entire application.
All modules should import and use the logger from this module instead of
using print() statements.

The terminal table owns stdout while the app is running, so the app points
logging at a file (see app.main). Library code and tests log to stdout.

Usage:
    from core.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Connected to Bithumb")

Log Levels (from most to least verbose):
    DEBUG    - Detailed diagnostic information (e.g., "Dropped frame: {...}")
    INFO     - General informational messages (e.g., "Connected to upbit")
    WARNING  - Warnings about potential issues (e.g., "Market list unavailable")
    ERROR    - Errors that don't crash the app (e.g., "WebSocket error")
    CRITICAL - Severe errors that may crash

Configuration:
    Log level is controlled by the LOG_LEVEL setting in .env file,
    the log destination by LOG_FILE.
"""

import logging
import sys
from typing import Optional


LOGGER_NAME = "coinboard"


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
    include_timestamp: bool = True,
    include_module: bool = True
) -> logging.Logger:
    """
    Configure and return the application logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Write to this file instead of stdout when set
        log_format: Custom log format string (uses default if None)
        include_timestamp: Include timestamp in log messages
        include_module: Include module name in log messages

    Returns:
        logging.Logger: Configured logger instance

    Example:
        >>> logger = setup_logging(log_level="DEBUG")
        >>> logger.info("Application started")
        2024-01-01 12:00:00 [INFO] coinboard Application started
    """
    if log_format is None:
        format_parts = []

        if include_timestamp:
            format_parts.append("%(asctime)s")

        format_parts.append("[%(levelname)s]")

        if include_module:
            format_parts.append("%(name)s")

        format_parts.append("%(message)s")

        log_format = " ".join(format_parts)

    level = getattr(logging, log_level.upper(), logging.INFO)

    if log_file:
        handlers = [logging.FileHandler(log_file, encoding="utf-8")]
    else:
        handlers = [logging.StreamHandler(sys.stdout)]

    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True  # Override any existing configuration
    )

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    return logger


# ============================================
# Initialize Logger with Settings
# ============================================

try:
    from core.config import settings
    log_level = settings.log_level if hasattr(settings, 'log_level') else "INFO"
except ImportError:
    # If settings not available yet (during initial import), use INFO
    log_level = "INFO"

logger = setup_logging(log_level=log_level)


# ============================================
# Convenience Functions
# ============================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module or component.

    Args:
        name: Name for the logger (typically __name__)

    Returns:
        logging.Logger: Logger instance for the specified name

    Example:
        # In exchanges/upbit/__init__.py:
        logger = get_logger(__name__)  # Creates "coinboard.exchanges.upbit"
    """
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def set_log_level(level: str) -> None:
    """
    Change the log level at runtime.

    Args:
        level: New log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Example:
        >>> from core.logging import set_log_level, logger
        >>> set_log_level("DEBUG")
        >>> logger.debug("This will now be visible")
    """
    new_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(new_level)
    logging.getLogger().setLevel(new_level)


# ============================================
# Log Helper Functions
# ============================================

def log_api_request(exchange: str, endpoint: str, params: dict = None) -> None:
    """
    Log an API request with consistent formatting.

    Example:
        >>> log_api_request("upbit", "/v1/market/all")
        [DEBUG] API Request: upbit /v1/market/all
    """
    if params:
        logger.debug(f"API Request: {exchange} {endpoint} | Params: {params}")
    else:
        logger.debug(f"API Request: {exchange} {endpoint}")


def log_api_response(exchange: str, endpoint: str, status: int, response_time: float = None) -> None:
    """
    Log an API response with status and timing information.

    Example:
        >>> log_api_response("bithumb", "/v1/market/all", 200, 0.342)
        [DEBUG] API Response: bithumb /v1/market/all | Status: 200 | Time: 0.342s
    """
    time_str = f" | Time: {response_time:.3f}s" if response_time else ""
    logger.debug(f"API Response: {exchange} {endpoint} | Status: {status}{time_str}")


def log_websocket_event(exchange: str, event: str, symbol: str = None, details: str = None) -> None:
    """
    Log a WebSocket event with consistent formatting.

    Args:
        exchange: Exchange name
        event: Event type (e.g., "connected", "closed", "reconnecting", "error")
        symbol: Trading symbol (optional)
        details: Additional details (optional)

    Example:
        >>> log_websocket_event("bithumb", "connected")
        [INFO] WebSocket: bithumb connected

        >>> log_websocket_event("upbit", "error", details="Connection timeout")
        [ERROR] WebSocket: upbit error | Connection timeout
    """
    symbol_str = f" | Symbol: {symbol}" if symbol else ""
    details_str = f" | {details}" if details else ""

    level = logging.ERROR if event == "error" else logging.INFO
    logger.log(level, f"WebSocket: {exchange} {event}{symbol_str}{details_str}")


logger.debug("Logging system initialized")
