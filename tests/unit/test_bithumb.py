"""
Unit Tests for the Bithumb Adapter

These tests verify that BithumbAdapter:
- Builds the MID tick type subscription
- Standardizes ticker frames into TickerRecord
- Derives the comparison price from the previous record
- Ignores status frames and drops malformed tickers

Run with:
    pytest tests/unit/test_bithumb.py -v
"""

from datetime import datetime, timezone

import pytest

from core.schemas import MarketInfo, PriceDirection
from exchanges.bithumb import BithumbAdapter
from exchanges.bithumb.api_client import BithumbAPIClient
from tests.unit.fakes import settle, wire


def ticker(symbol="BTC_KRW", **content):
    body = {
        "symbol": symbol,
        "tickType": "MID",
        "date": "20211204",
        "time": "174044",
        "closePrice": "100000000",
        "prevClosePrice": "97500000",
        "chgRate": "2.56",
        "chgAmt": "2500000",
        "highPrice": "101000000",
        "lowPrice": "96000000",
        "value": "123456789012.5",
        "volumePower": "105.3",
    }
    body.update(content)
    return {"type": "ticker", "content": body}


# ============================================
# Tests for Subscription
# ============================================

class TestSubscription:
    """Tests for build_subscription"""

    def test_requests_midnight_reference(self):
        adapter = BithumbAdapter()
        payload = adapter.build_subscription(["BTC_KRW", "ETH_KRW"])
        assert payload == {"type": "ticker", "symbols": ["BTC_KRW", "ETH_KRW"], "tickTypes": ["MID"]}


# ============================================
# Tests for Standardization
# ============================================

class TestStandardize:
    """Tests for standardize"""

    def test_parses_all_fields(self):
        record = BithumbAdapter().standardize(ticker())

        assert record.exchange == "bithumb"
        assert record.symbol == "BTC_KRW"
        assert record.current_price == 100_000_000
        assert record.prev_close_price == 97_500_000
        assert record.change_rate_pct == pytest.approx(2.56)
        assert record.change_amount == 2_500_000
        assert record.high_price == 101_000_000
        assert record.low_price == 96_000_000
        assert record.volume_power == pytest.approx(105.3)
        assert record.trade_value == pytest.approx(123456789012.5)
        assert record.timestamp == datetime(2021, 12, 4, 8, 40, 44, tzinfo=timezone.utc)

    def test_missing_optional_fields_are_none(self):
        record = BithumbAdapter().standardize(ticker(volumePower="", chgRate=None, value="NaN"))
        assert record.volume_power is None
        assert record.change_rate_pct is None
        assert record.trade_value is None

    def test_status_frame_is_ignored(self):
        assert BithumbAdapter().standardize({"status": "0000", "resmsg": "Connected Successfully"}) is None

    def test_other_channels_are_ignored(self):
        assert BithumbAdapter().standardize({"type": "transaction", "content": {}}) is None
        assert BithumbAdapter().standardize(["not", "a", "dict"]) is None

    def test_missing_close_price_raises(self):
        with pytest.raises(ValueError):
            BithumbAdapter().standardize(ticker(closePrice=None))

    def test_missing_symbol_raises(self):
        frame = ticker()
        del frame["content"]["symbol"]
        with pytest.raises(KeyError):
            BithumbAdapter().standardize(frame)

    def test_display_name_from_market_info(self):
        adapter = BithumbAdapter()
        adapter._market_info = {
            "BTC_KRW": MarketInfo(market="KRW-BTC", korean_name="비트코인", english_name="Bitcoin")
        }
        assert adapter.standardize(ticker()).display_name == "비트코인"

    def test_display_name_falls_back_to_symbol(self):
        assert BithumbAdapter().standardize(ticker()).display_name == "BTC_KRW"


# ============================================
# Tests for Streaming
# ============================================

class TestStreaming:
    """End-to-end frame handling over a fake socket"""

    @pytest.mark.asyncio
    async def test_subscribes_after_open(self, app_config, fake_ws):
        adapter = wire(BithumbAdapter(), fake_ws)

        await adapter.connect(app_config)
        await settle()

        assert fake_ws.sent == [{"type": "ticker", "symbols": ["BTC_KRW", "ETH_KRW"], "tickTypes": ["MID"]}]
        await adapter.shutdown()

    @pytest.mark.asyncio
    async def test_first_sighting_then_next_tick(self, app_config, fake_ws):
        """First tick compares against the previous close, later ones against the last tick."""
        adapter = wire(BithumbAdapter(), fake_ws)
        await adapter.connect(app_config)
        await settle()

        fake_ws.feed(ticker(closePrice="100000000", prevClosePrice="97500000"))
        await settle()
        first = adapter.get_snapshot()["BTC_KRW"]
        assert first.prev_comparison_price == 97_500_000
        assert first.direction == PriceDirection.UP

        fake_ws.feed(ticker(closePrice="99000000", prevClosePrice="97500000"))
        await settle()
        second = adapter.get_snapshot()["BTC_KRW"]
        assert second.prev_comparison_price == 100_000_000
        assert second.direction == PriceDirection.DOWN

        await adapter.shutdown()

    @pytest.mark.asyncio
    async def test_record_reflects_only_latest_frame(self, app_config, fake_ws):
        """Fields missing from a later frame become unknown, not the earlier values."""
        adapter = wire(BithumbAdapter(), fake_ws)
        await adapter.connect(app_config)
        await settle()

        fake_ws.feed(ticker())
        await settle()
        full = adapter.get_snapshot()["BTC_KRW"]
        assert full.change_rate_pct == pytest.approx(2.56)
        assert full.high_price == 101_000_000
        assert full.volume_power == pytest.approx(105.3)

        sparse = ticker(closePrice="100500000")
        for field in ("chgRate", "highPrice", "volumePower"):
            del sparse["content"][field]
        fake_ws.feed(sparse)
        await settle()

        latest = adapter.get_snapshot()["BTC_KRW"]
        assert latest.current_price == 100_500_000
        assert latest.change_rate_pct is None
        assert latest.high_price is None
        assert latest.volume_power is None
        assert latest.low_price == 96_000_000

        await adapter.shutdown()

    @pytest.mark.asyncio
    async def test_icon_and_cost_basis_from_config(self, app_config, fake_ws):
        adapter = wire(BithumbAdapter(), fake_ws)
        await adapter.connect(app_config)
        await settle()

        fake_ws.feed(ticker(closePrice="95000000"))
        await settle()

        record = adapter.get_snapshot()["BTC_KRW"]
        assert record.icon == "₿"
        assert record.average_purchase_price == 95_000_000
        assert record.profit_loss_rate_pct == pytest.approx(0.0)

        await adapter.shutdown()


# ============================================
# Tests for Market List Client
# ============================================

class TestBithumbAPIClient:
    """Tests for the market list endpoint wiring"""

    @pytest.mark.asyncio
    async def test_fetch_market_info_keys_by_symbol(self, monkeypatch):
        calls = {}

        async def mock_get(path, params=None):
            calls["path"] = path
            calls["params"] = params
            return [
                {"market": "KRW-BTC", "korean_name": "비트코인", "english_name": "Bitcoin"},
                {"market": "BTC-ETH", "korean_name": "이더리움", "english_name": "Ethereum"},
                "garbage",
            ]

        async with BithumbAPIClient() as client:
            monkeypatch.setattr(client, "_get", mock_get)
            markets = await client.fetch_market_info()

        assert calls == {"path": "/v1/market/all", "params": {"isDetails": "false"}}
        assert list(markets) == ["BTC_KRW"]
        assert markets["BTC_KRW"].korean_name == "비트코인"
