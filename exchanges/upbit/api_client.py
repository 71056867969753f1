"""
Upbit REST API Client

Fetches Upbit's public market list to resolve coin names for display.

API Documentation:
    https://docs.upbit.com/reference/마켓-코드-조회

Usage:
    async with UpbitAPIClient() as client:
        markets = await client.fetch_market_info()
"""

from core.http_client import MarketListClient


class UpbitAPIClient(MarketListClient):
    """
    Async HTTP client for the Upbit market list.

    Upbit Endpoint:
        GET /v1/market/all
    """

    BASE_URL = "https://api.upbit.com"
    MARKET_LIST_PATH = "/v1/market/all"

    exchange = "upbit"
