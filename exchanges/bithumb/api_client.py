"""
Bithumb REST API Client

Fetches Bithumb's public market list to resolve coin names for display.

API Documentation:
    https://apidocs.bithumb.com/reference/마켓코드-조회

Usage:
    async with BithumbAPIClient() as client:
        markets = await client.fetch_market_info()
"""

from core.http_client import MarketListClient


class BithumbAPIClient(MarketListClient):
    """
    Async HTTP client for the Bithumb market list.

    Bithumb Endpoint:
        GET /v1/market/all?isDetails=false

    Response Format:
        [{"market": "KRW-BTC", "korean_name": "비트코인", "english_name": "Bitcoin"}, ...]
    """

    BASE_URL = "https://api.bithumb.com"
    MARKET_LIST_PATH = "/v1/market/all"
    MARKET_LIST_PARAMS = {"isDetails": "false"}

    exchange = "bithumb"
