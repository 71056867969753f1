"""
Shared fixtures for unit tests.

No test touches the network: sockets are replaced by FakeWebSocket and
market list fetches are patched on each adapter.
"""

import pytest

from core.config import AppConfig, CoinConfig
from tests.unit.fakes import FakeWebSocket


@pytest.fixture
def app_config():
    return AppConfig(coins=(
        CoinConfig(symbol="BTC", icon="₿", unit_currency="KRW", average_purchase_price=95_000_000),
        CoinConfig(symbol="ETH", icon="Ξ", unit_currency="KRW"),
    ))


@pytest.fixture
def fake_ws():
    return FakeWebSocket()
