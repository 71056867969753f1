"""
Upbit Exchange Adapter

This module implements the ExchangeAdapter for Upbit (KRW spot market).

WebSocket Documentation:
    https://docs.upbit.com/reference/websocket-ticker

Endpoints Used:
    REST:
        - GET /v1/market/all - Market names (Korean/English)

    WebSocket:
        - wss://api.upbit.com/websocket/v1
        - Subscription: [{"ticket": "<uuid>"}, {"type": "ticker", "codes": ["KRW-BTC", ...]}]

Ticker Message Format (binary JSON frames):
    {
        "type": "ticker",
        "code": "KRW-BTC",
        "trade_price": 100000000.0,
        "prev_closing_price": 97500000.0,   // previous close (midnight KST)
        "signed_change_rate": 0.025,        // fraction, not percent
        "signed_change_price": 2500000.0,
        "high_price": ..., "low_price": ...,
        "acc_trade_price_24h": ...,
        "trade_timestamp": 1704110400000,
        "change": "RISE" | "EVEN" | "FALL",
        ...
    }

Notes:
    - Upbit does not report volume power, so volume_power is always None
    - Change values are relative to the previous day's close (midnight KST)
"""

import uuid
from typing import Any, Dict, List, Optional

from core.exchange_interface import ExchangeAdapter
from core.schemas import MarketInfo, TickerRecord, parse_optional_float, parse_required_float
from core.utils.time import optional_utc_datetime
from .api_client import UpbitAPIClient


def to_upbit_code(symbol: str) -> str:
    """
    Convert a canonical symbol to an Upbit market code.

    Example:
        >>> to_upbit_code("BTC_KRW")
        'KRW-BTC'
    """
    base, _, quote = symbol.partition("_")
    return f"{quote}-{base}"


def from_upbit_code(code: str) -> str:
    """
    Convert an Upbit market code to a canonical symbol.

    Example:
        >>> from_upbit_code("KRW-BTC")
        'BTC_KRW'
    """
    quote, sep, base = code.partition("-")
    if not sep or not base:
        raise ValueError(f"Invalid Upbit market code: {code!r}")
    return f"{base}_{quote}".upper()


class UpbitAdapter(ExchangeAdapter):
    """
    Upbit ticker adapter.

    Example:
        >>> adapter = UpbitAdapter(on_update=scheduler.signal)
        >>> await adapter.connect(app_config)
    """

    name = "upbit"
    display_name = "Upbit"
    ws_url = "wss://api.upbit.com/websocket/v1"

    async def fetch_market_info(self) -> Dict[str, MarketInfo]:
        async with UpbitAPIClient() as client:
            return await client.fetch_market_info()

    def build_subscription(self, symbols: List[str]) -> List[Dict[str, Any]]:
        return [
            {"ticket": str(uuid.uuid4())},
            {"type": "ticker", "codes": [to_upbit_code(s) for s in symbols]},
        ]

    def standardize(self, payload: Any) -> Optional[TickerRecord]:
        if not isinstance(payload, dict) or payload.get("type") != "ticker":
            return None

        symbol = from_upbit_code(str(payload["code"]))

        rate = parse_optional_float(payload.get("signed_change_rate"))

        return self.make_record(
            symbol=symbol,
            current_price=parse_required_float(payload.get("trade_price"), "trade_price"),
            prev_close_price=parse_optional_float(payload.get("prev_closing_price")),
            change_rate_pct=rate * 100 if rate is not None else None,
            change_amount=parse_optional_float(payload.get("signed_change_price")),
            high_price=parse_optional_float(payload.get("high_price")),
            low_price=parse_optional_float(payload.get("low_price")),
            volume_power=None,
            trade_value=parse_optional_float(payload.get("acc_trade_price_24h")),
            timestamp=optional_utc_datetime(payload.get("trade_timestamp")),
        )


__all__ = ["UpbitAdapter", "UpbitAPIClient", "to_upbit_code", "from_upbit_code"]
