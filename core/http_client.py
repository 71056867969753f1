"""
Market List REST Client

This module provides an async HTTP client for the exchanges' public market
list endpoints, used to resolve display names (e.g., "KRW-BTC" -> "비트코인").
It handles:
- HTTP requests with retry logic
- Rate limit handling (429, 418, 5xx errors)
- Error handling and logging

Failure here is never fatal: adapters fall back to the raw symbol.

Usage:
    async with UpbitAPIClient() as client:
        markets = await client.fetch_market_info()
        print(markets["BTC_KRW"].korean_name)
"""

import asyncio
import time
from typing import Any, Dict, Optional

import aiohttp

from core.logging import get_logger, log_api_request, log_api_response
from core.schemas import MarketInfo


RETRYABLE_STATUSES = (418, 429, 500, 502, 503, 504)


class MarketListClient:
    """
    Async HTTP client for a KRW market list endpoint.

    Subclasses set BASE_URL, MARKET_LIST_PATH and (optionally)
    MARKET_LIST_PARAMS. Both Bithumb and Upbit answer with the same shape:

        [{"market": "KRW-BTC", "korean_name": "비트코인", "english_name": "Bitcoin"}, ...]

    Attributes:
        exchange: Exchange name used in logs
        timeout: Per-request timeout in seconds
        max_retries: Attempts before giving up
        session: aiohttp ClientSession for HTTP requests

    Example:
        >>> async with BithumbAPIClient() as client:
        ...     markets = await client.fetch_market_info()
    """

    BASE_URL = ""
    MARKET_LIST_PATH = ""
    MARKET_LIST_PARAMS: Dict[str, Any] = {}
    QUOTE_PREFIX = "KRW-"

    exchange = "unknown"

    def __init__(self, timeout: Optional[float] = None, max_retries: Optional[int] = None):
        from core.config import settings

        self.timeout = timeout if timeout is not None else settings.request_timeout
        self.max_retries = max_retries if max_retries is not None else settings.request_max_retries
        self.session: Optional[aiohttp.ClientSession] = None
        self.logger = get_logger(__name__)

    # ============================================
    # Context Manager for Session Management
    # ============================================

    async def __aenter__(self):
        self.session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
        self.logger.debug(f"{self.__class__.__name__} session created")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.session:
            await self.session.close()
            self.logger.debug(f"{self.__class__.__name__} session closed")

    # ============================================
    # HTTP Request Handler with Retry Logic
    # ============================================

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Make GET request with retry logic.

        Args:
            path: API endpoint path (e.g., "/v1/market/all")
            params: Optional query parameters

        Returns:
            JSON response from API

        Raises:
            RuntimeError: If session is missing or request fails after all retries

        Retry Policy:
            - 418/429/5xx and network errors are retried
            - Delay: 1.0s * attempt number
            - Other HTTP errors stop immediately
        """
        if not self.session:
            raise RuntimeError("Client session not initialized. Use 'async with' statement.")

        url = f"{self.BASE_URL}{path}"
        headers = {"Accept": "application/json"}

        for attempt in range(1, self.max_retries + 1):
            log_api_request(self.exchange, path, params)
            started = time.monotonic()
            try:
                async with self.session.get(url, params=params, headers=headers) as resp:
                    log_api_response(self.exchange, path, resp.status, time.monotonic() - started)

                    if resp.status == 200:
                        return await resp.json(content_type=None)

                    if resp.status in RETRYABLE_STATUSES:
                        self.logger.warning(
                            f"HTTP {resp.status} on {path}. "
                            f"Retrying... (attempt {attempt}/{self.max_retries})"
                        )
                    else:
                        text = await resp.text()
                        self.logger.error(f"HTTP {resp.status} on {path}: {text[:200]}")
                        break

            except asyncio.TimeoutError:
                self.logger.error(f"Timeout on {path} (attempt {attempt}/{self.max_retries})")

            except aiohttp.ClientError as e:
                self.logger.error(f"Request failed on {path}: {e} (attempt {attempt}/{self.max_retries})")

            if attempt < self.max_retries:
                await asyncio.sleep(1.0 * attempt)

        raise RuntimeError(f"Failed to fetch {url} after {self.max_retries} attempts")

    # ============================================
    # API Methods
    # ============================================

    async def fetch_market_info(self) -> Dict[str, MarketInfo]:
        """
        Fetch the KRW market list keyed by canonical symbol.

        Returns:
            Dict mapping "BTC_KRW" style symbols to MarketInfo

        Raises:
            RuntimeError: If the request fails after all retries
        """
        data = await self._get(self.MARKET_LIST_PATH, self.MARKET_LIST_PARAMS or None)

        markets: Dict[str, MarketInfo] = {}
        for entry in data if isinstance(data, list) else []:
            if not isinstance(entry, dict):
                continue
            code = entry.get("market")
            if not isinstance(code, str) or not code.startswith(self.QUOTE_PREFIX):
                continue
            base = code[len(self.QUOTE_PREFIX):]
            quote = self.QUOTE_PREFIX.rstrip("-")
            markets[f"{base}_{quote}"] = MarketInfo(
                market=code,
                korean_name=entry.get("korean_name") or "",
                english_name=entry.get("english_name") or "",
            )

        self.logger.info(f"Loaded {len(markets)} {self.exchange} market names")
        return markets
