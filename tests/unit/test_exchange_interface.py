"""
Unit Tests for the Exchange Adapter Connection Supervisor

These tests verify that ExchangeAdapter:
- Connects once (connect is idempotent while connecting or open)
- Clears its data and cancels reconnects on disconnect
- Reconnects after a fixed delay when the socket drops unexpectedly
- Never resurrects itself from a stale socket task or timer
- Drops malformed frames without stopping

Bithumb is used as the concrete adapter; its socket is a FakeWebSocket.

Run with:
    pytest tests/unit/test_exchange_interface.py -v
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.exchange_interface import ConnectionState, ExchangeAdapter
from exchanges.bithumb import BithumbAdapter
from tests.unit.fakes import FakeWebSocket, settle, wire


RECONNECT_DELAY = 0.01


def ticker(symbol="BTC_KRW", price="100000000"):
    return {
        "type": "ticker",
        "content": {"symbol": symbol, "closePrice": price, "prevClosePrice": "97500000", "chgRate": "1.0"},
    }


# ============================================
# Tests for Interface Contract
# ============================================

class TestExchangeAdapterInterface:
    """Tests for the abstract contract"""

    def test_cannot_instantiate_abstract_class(self):
        with pytest.raises(TypeError):
            ExchangeAdapter()

    def test_new_adapter_is_idle(self):
        adapter = BithumbAdapter()
        assert adapter.state == ConnectionState.IDLE
        assert adapter.get_snapshot() == {}
        assert not adapter.wanted

    def test_repr(self):
        assert repr(BithumbAdapter()) == "<BithumbAdapter(name='bithumb', state='idle')>"

    def test_comparison_price_prefers_previous_record(self):
        previous = BithumbAdapter().standardize(ticker(price="5"))
        assert ExchangeAdapter.comparison_price(previous, 3.0) == 5.0
        assert ExchangeAdapter.comparison_price(None, 3.0) == 3.0
        assert ExchangeAdapter.comparison_price(None, None) is None


# ============================================
# Tests for connect()
# ============================================

class TestConnect:
    """Tests for connect"""

    @pytest.mark.asyncio
    async def test_connect_opens_socket_and_subscribes(self, app_config, fake_ws):
        adapter = wire(BithumbAdapter(), fake_ws)

        await adapter.connect(app_config)
        await settle()

        assert adapter.state == ConnectionState.OPEN
        assert adapter.is_connected
        assert len(fake_ws.sent) == 1
        await adapter.shutdown()

    @pytest.mark.asyncio
    async def test_connect_is_idempotent_while_open(self, app_config, fake_ws):
        adapter = wire(BithumbAdapter(), fake_ws)

        await adapter.connect(app_config)
        await settle()
        await adapter.connect(app_config)
        await settle()

        assert adapter._open_socket.await_count == 1
        assert adapter.fetch_market_info.await_count == 1
        await adapter.shutdown()

    @pytest.mark.asyncio
    async def test_connect_is_idempotent_while_connecting(self, app_config, fake_ws):
        release = asyncio.Event()

        async def slow_market_info():
            await release.wait()
            return {}

        adapter = wire(BithumbAdapter(), fake_ws)
        adapter.fetch_market_info = AsyncMock(side_effect=slow_market_info)

        first = asyncio.ensure_future(adapter.connect(app_config))
        await settle()
        assert adapter.state == ConnectionState.CONNECTING

        await adapter.connect(app_config)
        release.set()
        await first
        await settle()

        assert adapter.fetch_market_info.await_count == 1
        assert adapter._open_socket.await_count == 1
        await adapter.shutdown()

    @pytest.mark.asyncio
    async def test_disconnect_during_metadata_fetch_cancels_connect(self, app_config, fake_ws):
        release = asyncio.Event()

        async def slow_market_info():
            await release.wait()
            return {}

        adapter = wire(BithumbAdapter(), fake_ws)
        adapter.fetch_market_info = AsyncMock(side_effect=slow_market_info)

        pending = asyncio.ensure_future(adapter.connect(app_config))
        await settle()
        adapter.disconnect()
        release.set()
        await pending
        await settle()

        adapter._open_socket.assert_not_awaited()
        assert adapter.state == ConnectionState.CLOSED

    @pytest.mark.asyncio
    async def test_market_info_failure_falls_back_to_symbols(self, app_config, fake_ws):
        adapter = wire(BithumbAdapter(), fake_ws)
        adapter.fetch_market_info = AsyncMock(side_effect=RuntimeError("HTTP 503"))

        await adapter.connect(app_config)
        await settle()
        fake_ws.feed(ticker())
        await settle()

        assert adapter.get_snapshot()["BTC_KRW"].display_name == "BTC_KRW"
        await adapter.shutdown()

    @pytest.mark.asyncio
    async def test_unexpected_market_info_error_still_connects(self, app_config, fake_ws):
        adapter = wire(BithumbAdapter(), fake_ws)
        adapter.fetch_market_info = AsyncMock(side_effect=AttributeError("bad entry"))

        await adapter.connect(app_config)
        await settle()

        assert adapter.state == ConnectionState.OPEN
        assert adapter._open_socket.await_count == 1
        await adapter.shutdown()


# ============================================
# Tests for disconnect()
# ============================================

class TestDisconnect:
    """Tests for disconnect"""

    @pytest.mark.asyncio
    async def test_disconnect_clears_records_and_closes_socket(self, app_config, fake_ws):
        adapter = wire(BithumbAdapter(), fake_ws)
        await adapter.connect(app_config)
        await settle()
        fake_ws.feed(ticker())
        await settle()
        assert len(adapter.get_snapshot()) == 1

        adapter.disconnect()

        assert adapter.get_snapshot() == {}
        assert adapter.state == ConnectionState.CLOSED
        await settle()
        assert fake_ws.closed

    @pytest.mark.asyncio
    async def test_disconnect_resets_notifier(self, app_config, fake_ws):
        notifier = MagicMock()
        adapter = wire(BithumbAdapter(notifier=notifier), fake_ws)
        await adapter.connect(app_config)
        await settle()

        adapter.disconnect()

        notifier.reset.assert_called_once()
        await settle()

    @pytest.mark.asyncio
    async def test_reconnect_after_disconnect_starts_fresh(self, app_config):
        first, second = FakeWebSocket(), FakeWebSocket()
        adapter = wire(BithumbAdapter(), first, second)

        await adapter.connect(app_config)
        await settle()
        first.feed(ticker())
        await settle()
        adapter.disconnect()
        await settle()

        await adapter.connect(app_config)
        await settle()

        assert adapter.state == ConnectionState.OPEN
        assert adapter.get_snapshot() == {}
        assert len(second.sent) == 1
        await adapter.shutdown()


# ============================================
# Tests for Reconnection
# ============================================

class TestReconnect:
    """Tests for the fixed-delay reconnect loop"""

    @pytest.mark.asyncio
    async def test_unexpected_close_schedules_reconnect(self, app_config):
        first, second = FakeWebSocket(), FakeWebSocket()
        adapter = wire(BithumbAdapter(reconnect_delay=RECONNECT_DELAY), first, second)
        await adapter.connect(app_config)
        await settle()

        first.drop()
        await settle()

        assert adapter.state == ConnectionState.RECONNECT_WAIT
        assert adapter.reconnect_pending

        await asyncio.sleep(RECONNECT_DELAY * 5)
        await settle()

        assert adapter.state == ConnectionState.OPEN
        assert adapter.reconnect_count == 1
        assert len(second.sent) == 1
        await adapter.shutdown()

    @pytest.mark.asyncio
    async def test_records_survive_unexpected_reconnect(self, app_config):
        first, second = FakeWebSocket(), FakeWebSocket()
        adapter = wire(BithumbAdapter(reconnect_delay=RECONNECT_DELAY), first, second)
        await adapter.connect(app_config)
        await settle()
        first.feed(ticker())
        await settle()

        first.drop()
        await asyncio.sleep(RECONNECT_DELAY * 5)
        await settle()

        assert "BTC_KRW" in adapter.get_snapshot()
        await adapter.shutdown()

    @pytest.mark.asyncio
    async def test_open_failure_is_retried(self, app_config, fake_ws):
        adapter = wire(BithumbAdapter(reconnect_delay=RECONNECT_DELAY), OSError("refused"), fake_ws)

        await adapter.connect(app_config)
        await settle()
        assert adapter.state == ConnectionState.RECONNECT_WAIT

        await asyncio.sleep(RECONNECT_DELAY * 5)
        await settle()

        assert adapter.state == ConnectionState.OPEN
        assert adapter._open_socket.await_count == 2
        await adapter.shutdown()

    @pytest.mark.asyncio
    async def test_disconnect_cancels_pending_reconnect(self, app_config, fake_ws):
        adapter = wire(BithumbAdapter(reconnect_delay=RECONNECT_DELAY), fake_ws)
        await adapter.connect(app_config)
        await settle()
        fake_ws.drop()
        await settle()
        assert adapter.reconnect_pending

        adapter.disconnect()
        assert not adapter.reconnect_pending

        await asyncio.sleep(RECONNECT_DELAY * 5)
        await settle()

        assert adapter.state == ConnectionState.CLOSED
        assert adapter._open_socket.await_count == 1

    @pytest.mark.asyncio
    async def test_stale_timer_is_a_no_op(self, app_config, fake_ws):
        adapter = wire(BithumbAdapter(reconnect_delay=60), fake_ws)
        await adapter.connect(app_config)
        await settle()
        stale_generation = adapter._generation

        adapter.disconnect()
        adapter._reconnect(stale_generation)
        await settle()

        assert adapter.state == ConnectionState.CLOSED
        assert adapter.reconnect_count == 0
        assert adapter._open_socket.await_count == 1

    @pytest.mark.asyncio
    async def test_intentional_close_does_not_reconnect(self, app_config, fake_ws):
        adapter = wire(BithumbAdapter(reconnect_delay=RECONNECT_DELAY), fake_ws)
        await adapter.connect(app_config)
        await settle()

        await adapter.shutdown()
        await asyncio.sleep(RECONNECT_DELAY * 5)

        assert adapter.state == ConnectionState.CLOSED
        assert not adapter.reconnect_pending
        assert adapter._open_socket.await_count == 1


# ============================================
# Tests for Message Handling
# ============================================

class TestHandleMessage:
    """Tests for frame decoding and upserts"""

    @pytest.mark.asyncio
    async def test_malformed_frames_are_dropped(self, app_config, fake_ws):
        on_update = MagicMock()
        adapter = wire(BithumbAdapter(on_update=on_update), fake_ws)
        await adapter.connect(app_config)
        await settle()

        fake_ws.feed("{not json")
        fake_ws.feed({"type": "ticker", "content": {"symbol": "BTC_KRW"}})
        fake_ws.feed({"type": "ticker", "content": "oops"})
        fake_ws.feed(ticker())
        await settle()

        assert adapter.state == ConnectionState.OPEN
        assert list(adapter.get_snapshot()) == ["BTC_KRW"]
        on_update.assert_called_once()
        await adapter.shutdown()

    @pytest.mark.asyncio
    async def test_every_upsert_signals_and_feeds_notifier(self, app_config, fake_ws):
        on_update = MagicMock()
        notifier = MagicMock()
        adapter = wire(BithumbAdapter(on_update=on_update, notifier=notifier), fake_ws)
        await adapter.connect(app_config)
        await settle()

        fake_ws.feed(ticker(price="1"))
        fake_ws.feed(ticker(price="2"))
        fake_ws.feed(ticker(symbol="ETH_KRW", price="3"))
        await settle()

        assert on_update.call_count == 3
        assert notifier.observe.call_count == 3
        assert len(adapter.get_snapshot()) == 2
        await adapter.shutdown()

    def test_frames_ignored_when_not_wanted(self):
        adapter = BithumbAdapter()
        assert adapter.handle_message('{"type": "ticker", "content": {}}') is None
        assert adapter.get_snapshot() == {}

    @pytest.mark.asyncio
    async def test_snapshot_is_read_only_copy(self, app_config, fake_ws):
        adapter = wire(BithumbAdapter(), fake_ws)
        await adapter.connect(app_config)
        await settle()
        fake_ws.feed(ticker(price="1"))
        await settle()

        snapshot = adapter.get_snapshot()
        fake_ws.feed(ticker(price="2"))
        await settle()

        assert snapshot["BTC_KRW"].current_price == 1
        assert adapter.get_snapshot()["BTC_KRW"].current_price == 2
        with pytest.raises(TypeError):
            snapshot["ETH_KRW"] = snapshot["BTC_KRW"]
        await adapter.shutdown()
