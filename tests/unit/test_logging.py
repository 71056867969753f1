"""
Unit Tests for the Logging Module

These tests verify that:
- Module loggers live under the coinboard logger
- set_log_level changes the app and root levels at runtime
- WebSocket errors log at ERROR, other events at INFO

Run with:
    pytest tests/unit/test_logging.py -v
"""

import logging

import pytest

from core.logging import (
    LOGGER_NAME,
    get_logger,
    log_api_request,
    log_websocket_event,
    logger,
    set_log_level,
    setup_logging,
)


@pytest.fixture
def restore_levels():
    root = logging.getLogger()
    saved = (logger.level, root.level)
    yield
    logger.setLevel(saved[0])
    root.setLevel(saved[1])


# ============================================
# Tests for Logger Setup
# ============================================

class TestLoggers:
    """Tests for setup_logging and get_logger"""

    def test_get_logger_is_namespaced(self):
        assert get_logger("exchanges.upbit").name == f"{LOGGER_NAME}.exchanges.upbit"

    def test_setup_logging_writes_to_file(self, tmp_path, restore_levels):
        log_file = tmp_path / "coinboard.log"

        app_logger = setup_logging(log_level="warning", log_file=str(log_file))
        app_logger.warning("Market list unavailable")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert app_logger.level == logging.WARNING
        assert "[WARNING] coinboard Market list unavailable" in log_file.read_text(encoding="utf-8")
        setup_logging()


# ============================================
# Tests for set_log_level
# ============================================

class TestSetLogLevel:
    """Tests for set_log_level"""

    def test_changes_app_and_root_level(self, restore_levels):
        set_log_level("debug")

        assert logger.level == logging.DEBUG
        assert logging.getLogger().level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self, restore_levels):
        set_log_level("verbose")

        assert logger.level == logging.INFO
        assert logging.getLogger().level == logging.INFO


# ============================================
# Tests for Log Helpers
# ============================================

class TestLogHelpers:
    """Tests for log_websocket_event and log_api_request"""

    def test_websocket_error_logs_at_error(self, caplog):
        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            log_websocket_event("upbit", "error", details="Connection timeout")

        assert caplog.records[-1].levelno == logging.ERROR
        assert caplog.records[-1].getMessage() == "WebSocket: upbit error | Connection timeout"

    def test_websocket_event_logs_at_info(self, caplog):
        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            log_websocket_event("bithumb", "connected", symbol="BTC_KRW")

        assert caplog.records[-1].levelno == logging.INFO
        assert caplog.records[-1].getMessage() == "WebSocket: bithumb connected | Symbol: BTC_KRW"

    def test_api_request_logs_at_debug(self, caplog):
        with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
            log_api_request("upbit", "/v1/market/all", {"isDetails": "false"})

        assert caplog.records[-1].levelno == logging.DEBUG
        assert "Params: {'isDetails': 'false'}" in caplog.records[-1].getMessage()
