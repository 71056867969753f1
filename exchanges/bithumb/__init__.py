"""
Bithumb Exchange Adapter

This module implements the ExchangeAdapter for Bithumb (KRW spot market).

WebSocket Documentation:
    https://apidocs.bithumb.com/v1.2.0/reference/websocket

Endpoints Used:
    REST:
        - GET /v1/market/all - Market names (Korean/English)

    WebSocket:
        - wss://pubwss.bithumb.com/pub/ws
        - Subscription: {"type": "ticker", "symbols": [...], "tickTypes": ["MID"]}

Ticker Message Format:
    {
        "type": "ticker",
        "content": {
            "symbol": "BTC_KRW",
            "tickType": "MID",          // midnight reference
            "date": "20211204",         // KST
            "time": "174044",           // KST
            "openPrice": "...",
            "closePrice": "...",        // current price
            "lowPrice": "...",
            "highPrice": "...",
            "value": "...",             // accumulated traded value (KRW)
            "volume": "...",
            "prevClosePrice": "...",
            "chgRate": "...",           // % vs midnight
            "chgAmt": "...",
            "volumePower": "..."        // buy/sell pressure, >100 means buy side leads
        }
    }

    All values are strings. Status frames ({"status": "0000", "resmsg": ...})
    are acknowledgements and carry no ticker.
"""

from typing import Any, Dict, List, Optional

from core.exchange_interface import ExchangeAdapter
from core.schemas import MarketInfo, TickerRecord, parse_optional_float, parse_required_float
from core.utils.time import kst_to_utc_datetime
from .api_client import BithumbAPIClient


class BithumbAdapter(ExchangeAdapter):
    """
    Bithumb ticker adapter.

    Subscribes with tickType "MID" so change rates are relative to midnight
    KST, the same reference Upbit uses.

    Example:
        >>> adapter = BithumbAdapter(on_update=scheduler.signal)
        >>> await adapter.connect(app_config)
        >>> adapter.get_snapshot()["BTC_KRW"].current_price
    """

    name = "bithumb"
    display_name = "Bithumb"
    ws_url = "wss://pubwss.bithumb.com/pub/ws"

    TICK_TYPE = "MID"

    async def fetch_market_info(self) -> Dict[str, MarketInfo]:
        async with BithumbAPIClient() as client:
            return await client.fetch_market_info()

    def build_subscription(self, symbols: List[str]) -> Dict[str, Any]:
        return {
            "type": "ticker",
            "symbols": symbols,
            "tickTypes": [self.TICK_TYPE],
        }

    def standardize(self, payload: Any) -> Optional[TickerRecord]:
        if not isinstance(payload, dict):
            return None

        if payload.get("type") != "ticker":
            if "status" in payload:
                self.logger.debug(f"Bithumb status: {payload.get('status')} {payload.get('resmsg', '')}")
            return None

        content = payload["content"]
        if not isinstance(content, dict):
            raise TypeError(f"Unexpected ticker content: {type(content).__name__}")

        symbol = str(content["symbol"]).upper()

        return self.make_record(
            symbol=symbol,
            current_price=parse_required_float(content.get("closePrice"), "closePrice"),
            prev_close_price=parse_optional_float(content.get("prevClosePrice")),
            change_rate_pct=parse_optional_float(content.get("chgRate")),
            change_amount=parse_optional_float(content.get("chgAmt")),
            high_price=parse_optional_float(content.get("highPrice")),
            low_price=parse_optional_float(content.get("lowPrice")),
            volume_power=parse_optional_float(content.get("volumePower")),
            trade_value=parse_optional_float(content.get("value")),
            timestamp=kst_to_utc_datetime(content.get("date"), content.get("time")),
        )


__all__ = ["BithumbAdapter", "BithumbAPIClient"]
