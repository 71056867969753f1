"""
Exchange Interface - Abstract Contract for All Exchange Adapters

This module defines the abstract base class that all exchange adapters must
implement, together with the connection supervisor every adapter shares.

An adapter owns exactly one exchange connection. It:
- fetches static market metadata (names) before opening the stream
- opens one WebSocket and sends one subscription for every configured symbol
- standardizes each ticker frame into a TickerRecord and upserts it by symbol
- signals the render scheduler after every upsert
- reconnects after a fixed delay when the socket drops unexpectedly

Connection State Machine:

    IDLE --connect()--> CONNECTING --socket open--> OPEN
                            ^                        |
                            |                    socket closed
                      reconnect timer                |
                            |                        v
                       RECONNECT_WAIT <--wanted-- (close handler)
                                                     |
                                                 not wanted
                                                     v
                                                   CLOSED

    disconnect() from any state -> CLOSED (timer cancelled, data cleared)

Every disconnect() bumps a generation counter. Socket tasks and reconnect
timers remember the generation they were started for and become no-ops once
it changes, so a disconnected adapter can never resurrect itself.

Design Philosophy:
    "Program to an interface, not an implementation"

    The app works with ExchangeAdapter, not specific exchanges.

Example:
    class BithumbAdapter(ExchangeAdapter):
        name = "bithumb"
        display_name = "Bithumb"
        ws_url = "wss://pubwss.bithumb.com/pub/ws"

        def build_subscription(self, symbols):
            ...

        def standardize(self, payload):
            ...
"""

import asyncio
import json
from abc import ABC, abstractmethod
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from core.config import AppConfig, CoinConfig
from core.logging import get_logger, log_websocket_event
from core.schemas import MarketInfo, TickerRecord


class ConnectionState(str, Enum):
    """Lifecycle state of an adapter's connection."""

    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    RECONNECT_WAIT = "reconnect_wait"
    CLOSED = "closed"


class ExchangeAdapter(ABC):
    """
    Abstract Base Class for Exchange Adapters

    Class Attributes:
        name: Unique identifier for the exchange (lowercase, e.g., "bithumb")
        display_name: Human readable name for the screen header
        ws_url: WebSocket endpoint

    Abstract Methods (MUST be implemented by all exchanges):
        - build_subscription: Exchange-specific subscription payload
        - standardize: Wire message -> TickerRecord (or None if not a ticker)

    Optional Methods (can be overridden):
        - fetch_market_info: Market names for display
        - market_symbols: Mapping of canonical symbols to configured coins

    Attributes:
        state: Current ConnectionState
        reconnect_delay: Fixed delay (seconds) before a reconnect attempt
        reconnect_count: Number of reconnect attempts so far

    Failure Semantics:
        Network failures are retried forever with a fixed delay. There is no
        retry cap and no give-up state: this is a long-running display.
    """

    # ============================================
    # Class Attributes (must be set by subclasses)
    # ============================================

    name: str
    display_name: str
    ws_url: str

    def __init__(
        self,
        on_update: Optional[Callable[[], None]] = None,
        notifier=None,
        reconnect_delay: Optional[float] = None
    ):
        """
        Args:
            on_update: Called after every upsert (usually RenderScheduler.signal)
            notifier: Optional ChangeRateNotifier fed with every record
            reconnect_delay: Override for settings.ws_reconnect_delay
        """
        from core.config import settings

        self._on_update = on_update
        self._notifier = notifier
        self.reconnect_delay = (
            reconnect_delay if reconnect_delay is not None else settings.ws_reconnect_delay
        )
        self.open_timeout = settings.ws_open_timeout
        self.ping_interval = settings.ws_ping_interval
        self.name_language = settings.name_language

        self.state = ConnectionState.IDLE
        self.reconnect_count = 0

        self._wanted = False
        self._generation = 0
        self._config: Optional[AppConfig] = None
        self._coins: Dict[str, CoinConfig] = {}
        self._market_info: Dict[str, MarketInfo] = {}
        self._records: Dict[str, TickerRecord] = {}

        self._ws = None
        self._task: Optional[asyncio.Task] = None
        self._reconnect_handle: Optional[asyncio.TimerHandle] = None

        self.logger = get_logger(f"exchanges.{self.name}")

    # ============================================
    # Abstract Methods
    # ============================================

    @abstractmethod
    def build_subscription(self, symbols: List[str]) -> Any:
        """
        Build the subscription payload sent right after the socket opens.

        Args:
            symbols: Canonical symbols to subscribe to (e.g., ["BTC_KRW"])

        Returns:
            JSON-serializable payload. Must request the midnight/24h
            reference tick type where the exchange offers a choice.
        """
        ...

    @abstractmethod
    def standardize(self, payload: Any) -> Optional[TickerRecord]:
        """
        Translate one decoded wire message into a TickerRecord.

        Args:
            payload: Decoded JSON message

        Returns:
            TickerRecord for a ticker message, None for anything else
            (acks, status frames, other channels)

        Raises:
            KeyError, TypeError, ValueError: On schema violations.
                The caller drops the frame and keeps going.
        """
        ...

    # ============================================
    # Optional Hooks
    # ============================================

    async def fetch_market_info(self) -> Dict[str, MarketInfo]:
        """
        Fetch market names keyed by canonical symbol.

        Default: no metadata, symbols are displayed raw.
        """
        return {}

    def market_symbols(self, config: AppConfig) -> Dict[str, CoinConfig]:
        """
        Map canonical symbols to the configured coins for this exchange.

        Default: BASE_QUOTE exactly as configured.
        """
        return {coin.market_symbol: coin for coin in config.coins}

    # ============================================
    # Public Contract
    # ============================================

    async def connect(self, config: AppConfig) -> None:
        """
        Start streaming for every coin in config.

        A no-op while a connection attempt is in flight or open. A pending
        reconnect timer is replaced by an immediate attempt.

        Args:
            config: Immutable user configuration
        """
        if self.state in (ConnectionState.CONNECTING, ConnectionState.OPEN):
            self.logger.debug(f"{self.name} connect ignored (state={self.state.value})")
            return

        self._cancel_reconnect()
        self._wanted = True
        self._config = config
        self._coins = self.market_symbols(config)
        self.state = ConnectionState.CONNECTING
        generation = self._generation

        market_info = await self._load_market_info()

        if not self._wanted or generation != self._generation:
            self.logger.debug(f"{self.name} connect superseded by disconnect")
            return

        self._market_info = market_info
        self._start_socket_task(generation)

    def disconnect(self) -> None:
        """
        Stop streaming on purpose.

        Cancels any reconnect timer and the socket task (which closes the
        socket), and clears the ticker records before returning.
        """
        self._wanted = False
        self._generation += 1
        self._cancel_reconnect()

        if self._task is not None and not self._task.done():
            self._task.cancel()

        self._ws = None
        self._records.clear()
        if self._notifier is not None:
            self._notifier.reset()

        if self.state != ConnectionState.IDLE:
            log_websocket_event(self.name, "disconnected")
        self.state = ConnectionState.CLOSED

    def get_snapshot(self) -> Mapping[str, TickerRecord]:
        """Read-only point-in-time copy of the ticker records."""
        return MappingProxyType(dict(self._records))

    async def shutdown(self) -> None:
        """Disconnect and wait for the socket task to finish closing."""
        task = self._task
        self.disconnect()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    # ============================================
    # Message Handling
    # ============================================

    def handle_message(self, raw: Any) -> Optional[TickerRecord]:
        """
        Decode, standardize and upsert one frame.

        Malformed frames are dropped with a warning; the adapter keeps running.

        Returns:
            The stored TickerRecord, or None if the frame was ignored
        """
        if not self._wanted:
            return None

        try:
            payload = json.loads(raw)
        except (TypeError, ValueError) as e:
            self.logger.warning(f"Dropped malformed {self.name} frame: {e}")
            return None

        try:
            record = self.standardize(payload)
        except (KeyError, TypeError, ValueError) as e:
            self.logger.warning(f"Dropped invalid {self.name} ticker: {e}")
            return None

        if record is None:
            return None

        self._records[record.symbol] = record

        if self._notifier is not None:
            self._notifier.observe(record)

        if self._on_update is not None:
            self._on_update()

        return record

    def make_record(
        self,
        symbol: str,
        current_price: float,
        prev_close_price: Optional[float],
        **fields: Any
    ) -> TickerRecord:
        """
        Build a TickerRecord with the exchange-independent fields filled in.

        Resolves display name, icon and cost basis, and sets
        prev_comparison_price from this adapter's last record for the symbol.
        """
        coin = self.coin_for(symbol)
        previous = self._records.get(symbol)

        return TickerRecord(
            exchange=self.name,
            symbol=symbol,
            display_name=self.display_name_for(symbol),
            icon=coin.icon if coin else " ",
            current_price=current_price,
            prev_comparison_price=self.comparison_price(previous, prev_close_price),
            prev_close_price=prev_close_price,
            average_purchase_price=self.cost_basis_for(symbol, coin),
            **fields
        )

    @staticmethod
    def comparison_price(
        previous: Optional[TickerRecord],
        prev_close_price: Optional[float]
    ) -> Optional[float]:
        """Previous record's price if any, else the exchange's previous close."""
        if previous is not None:
            return previous.current_price
        return prev_close_price

    # ============================================
    # Lookup Helpers
    # ============================================

    def display_name_for(self, symbol: str) -> str:
        info = self._market_info.get(symbol)
        if info is not None:
            name = info.name(self.name_language)
            if name:
                return name
        return symbol

    def coin_for(self, symbol: str) -> Optional[CoinConfig]:
        return self._coins.get(symbol)

    def cost_basis_for(self, symbol: str, coin: Optional[CoinConfig]) -> Optional[float]:
        """Cost basis applies only when it is quoted in the pair's quote currency."""
        if coin is None or coin.average_purchase_price <= 0:
            return None
        quote = symbol.split("_", 1)[-1]
        if coin.unit_currency.upper() != quote:
            return None
        return coin.average_purchase_price

    # ============================================
    # Status
    # ============================================

    @property
    def wanted(self) -> bool:
        """True while the user wants this adapter connected."""
        return self._wanted

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.OPEN

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    # ============================================
    # Connection Supervisor
    # ============================================

    async def _load_market_info(self) -> Dict[str, MarketInfo]:
        try:
            return await self.fetch_market_info()
        except Exception as e:
            self.logger.warning(f"{self.name} market names unavailable, showing raw symbols: {e}")
            return {}

    async def _open_socket(self):
        return await websockets.connect(
            self.ws_url,
            open_timeout=self.open_timeout,
            ping_interval=self.ping_interval
        )

    def _start_socket_task(self, generation: int) -> None:
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run_socket(generation), name=f"{self.name}-socket")

    async def _run_socket(self, generation: int) -> None:
        """
        Own one socket from open to close.

        Errors are only logged here; whether to reconnect is decided by the
        close handler, which runs exactly once per socket.
        """
        ws = None
        try:
            log_websocket_event(self.name, "connecting", details=self.ws_url)
            ws = await self._open_socket()
            if generation != self._generation:
                return

            self._ws = ws
            self.state = ConnectionState.OPEN
            log_websocket_event(self.name, "connected")

            symbols = list(self._coins.keys())
            await ws.send(json.dumps(self.build_subscription(symbols)))
            self.logger.info(f"Subscribed to {len(symbols)} {self.name} symbols")

            async for raw in ws:
                self.handle_message(raw)

            log_websocket_event(self.name, "closed")

        except ConnectionClosed as e:
            log_websocket_event(self.name, "closed", details=str(e))

        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            log_websocket_event(self.name, "error", details=str(e) or e.__class__.__name__)

        finally:
            if ws is not None:
                await self._close_socket(ws)
            self._handle_close(generation)

    async def _close_socket(self, ws) -> None:
        try:
            await ws.close()
        except (OSError, WebSocketException) as e:
            self.logger.debug(f"Error while closing {self.name} socket: {e}")
        if self._ws is ws:
            self._ws = None

    def _handle_close(self, generation: int) -> None:
        if generation != self._generation:
            return

        if not self._wanted:
            self.state = ConnectionState.CLOSED
            return

        self.state = ConnectionState.RECONNECT_WAIT
        log_websocket_event(self.name, "reconnecting", details=f"in {self.reconnect_delay}s")
        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(self.reconnect_delay, self._reconnect, generation)

    def _reconnect(self, generation: int) -> None:
        self._reconnect_handle = None
        if not self._wanted or generation != self._generation:
            self.logger.debug(f"Stale {self.name} reconnect timer ignored")
            return

        self.reconnect_count += 1
        self.state = ConnectionState.CONNECTING
        self._start_socket_task(generation)

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    # ============================================
    # Helper Methods
    # ============================================

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name='{self.name}', state='{self.state.value}')>"
