"""
Binance Exchange Adapter

This module implements the ExchangeAdapter for Binance spot markets.

WebSocket Documentation:
    https://developers.binance.com/docs/binance-spot-api-docs/web-socket-streams

Endpoints Used:
    WebSocket:
        - wss://stream.binance.com:9443/stream (combined stream endpoint)
        - Subscription: {"method": "SUBSCRIBE", "params": ["btcusdt@ticker", ...], "id": 1}

Ticker Message Format (combined stream wrapper):
    {
        "stream": "btcusdt@ticker",
        "data": {
            "e": "24hrTicker",
            "E": 1704110400000,   // event time (ms)
            "s": "BTCUSDT",
            "p": "1000.00",       // price change
            "P": "2.50",          // price change percent
            "x": "40000.00",      // last price before the 24h window
            "c": "41000.00",      // last price
            "h": "41500.00",
            "l": "39800.00",
            "q": "123456789.0"    // quote volume
        }
    }

Notes:
    - Binance has no KRW market; KRW-quoted coins are shown against
      settings.binance_quote_currency (USDT by default)
    - Binance only offers a rolling 24h window, which is used as the reference
    - There is no name list, so symbols are displayed raw
    - Binance does not report volume power
"""

from typing import Any, Dict, List, Optional

from core.config import AppConfig, CoinConfig
from core.exchange_interface import ExchangeAdapter
from core.schemas import TickerRecord, parse_optional_float, parse_required_float
from core.utils.time import optional_utc_datetime


class BinanceAdapter(ExchangeAdapter):
    """
    Binance spot ticker adapter.

    Example:
        >>> adapter = BinanceAdapter(on_update=scheduler.signal)
        >>> await adapter.connect(app_config)
        >>> adapter.get_snapshot()["BTC_USDT"].change_rate_pct
    """

    name = "binance"
    display_name = "Binance"
    ws_url = "wss://stream.binance.com:9443/stream"

    STREAM_SUFFIX = "@ticker"
    FIAT_QUOTES = ("KRW",)

    def __init__(self, *args, quote_currency: Optional[str] = None, **kwargs):
        super().__init__(*args, **kwargs)
        from core.config import settings

        self.quote_currency = (quote_currency or settings.binance_quote_currency).upper()

    def market_symbols(self, config: AppConfig) -> Dict[str, CoinConfig]:
        symbols: Dict[str, CoinConfig] = {}
        for coin in config.coins:
            quote = coin.unit_currency.upper()
            if quote in self.FIAT_QUOTES:
                quote = self.quote_currency
            symbols.setdefault(f"{coin.symbol.upper()}_{quote}", coin)
        return symbols

    def build_subscription(self, symbols: List[str]) -> Dict[str, Any]:
        return {
            "method": "SUBSCRIBE",
            "params": [f"{s.replace('_', '').lower()}{self.STREAM_SUFFIX}" for s in symbols],
            "id": 1,
        }

    def standardize(self, payload: Any) -> Optional[TickerRecord]:
        if not isinstance(payload, dict):
            return None

        data = payload.get("data", payload)
        if not isinstance(data, dict) or data.get("e") != "24hrTicker":
            if "result" in payload:
                self.logger.debug(f"Binance ack: {payload}")
            return None

        symbol = self._canonical_symbol(str(data["s"]))
        if symbol is None:
            self.logger.debug(f"Ignoring unsubscribed Binance symbol {data['s']}")
            return None

        return self.make_record(
            symbol=symbol,
            current_price=parse_required_float(data.get("c"), "c"),
            prev_close_price=parse_optional_float(data.get("x")),
            change_rate_pct=parse_optional_float(data.get("P")),
            change_amount=parse_optional_float(data.get("p")),
            high_price=parse_optional_float(data.get("h")),
            low_price=parse_optional_float(data.get("l")),
            volume_power=None,
            trade_value=parse_optional_float(data.get("q")),
            timestamp=optional_utc_datetime(data.get("E")),
        )

    def _canonical_symbol(self, binance_symbol: str) -> Optional[str]:
        """Map "BTCUSDT" back to "BTC_USDT" using the subscribed set."""
        wanted = binance_symbol.upper()
        for symbol in self._coins:
            if symbol.replace("_", "") == wanted:
                return symbol
        return None


__all__ = ["BinanceAdapter"]
