"""
Exchange Manager - Registry and Sequential Exchange Switching

This module provides a centralized manager for all exchange adapters.
The ExchangeManager acts as a registry and as the connection supervisor for
switching the active exchange.

Switching Rule:
    At most one adapter is connected at a time. A switch fully disconnects
    (and clears) the previous adapter before the new one is bound and
    connected, so the screen never shows rows from two exchanges.

    Switches are never run in parallel: a later switch disconnects the
    adapter an earlier switch was still connecting, and that adapter's
    generation check turns the earlier connect into a no-op.

Example Usage:
    manager = ExchangeManager(aggregator, [BithumbAdapter(...), UpbitAdapter(...)])
    await manager.switch_exchange("bithumb", app_config)
    ...
    await manager.switch_exchange("upbit", app_config)
    await manager.shutdown_all()
"""

import asyncio
from typing import Callable, Dict, Iterable, List, Optional

from core.aggregator import Aggregator
from core.config import AppConfig
from core.exchange_interface import ExchangeAdapter
from core.logging import logger


class ExchangeManager:
    """
    Central Manager for Exchange Adapters

    Attributes:
        exchanges: Dictionary mapping exchange names to adapter instances,
                   in menu order
        aggregator: Aggregator bound to the active adapter

    Example:
        >>> manager = ExchangeManager(aggregator, adapters)
        >>> manager.list_exchanges()
        ['bithumb', 'upbit', 'binance']
        >>> manager.exchange_at(2).name
        'upbit'
    """

    def __init__(self, aggregator: Aggregator, adapters: Iterable[ExchangeAdapter]):
        self.aggregator = aggregator
        self.exchanges: Dict[str, ExchangeAdapter] = {}
        for adapter in adapters:
            self.exchanges[adapter.name] = adapter

        logger.info(
            f"ExchangeManager initialized with {len(self.exchanges)} exchange(s): "
            f"{', '.join(self.exchanges.keys())}"
        )

    # ============================================
    # Exchange Retrieval Methods
    # ============================================

    def get_exchange(self, name: str) -> ExchangeAdapter:
        """
        Get an exchange adapter by name.

        Raises:
            ValueError: If the exchange is not supported
        """
        name = name.lower()

        if name not in self.exchanges:
            available = ", ".join(self.exchanges.keys())
            logger.error(f"Exchange '{name}' not found. Available: {available}")
            raise ValueError(
                f"Exchange '{name}' is not supported. "
                f"Available exchanges: {available}"
            )

        return self.exchanges[name]

    def has_exchange(self, name: str) -> bool:
        return name.lower() in self.exchanges

    def list_exchanges(self) -> List[str]:
        return list(self.exchanges.keys())

    def exchange_at(self, number: int) -> Optional[ExchangeAdapter]:
        """
        Adapter for a 1-based menu number, or None if out of range.
        """
        adapters = list(self.exchanges.values())
        if 1 <= number <= len(adapters):
            return adapters[number - 1]
        return None

    @property
    def active(self) -> Optional[ExchangeAdapter]:
        return self.aggregator.active

    # ============================================
    # Switching
    # ============================================

    def _activate(self, name: str) -> Optional[ExchangeAdapter]:
        """
        Disconnect the current adapter and bind name, without connecting it.

        Returns:
            The newly bound adapter, or None if it was already active

        Raises:
            ValueError: If the exchange is not supported
        """
        target = self.get_exchange(name)
        current = self.aggregator.active

        if current is target:
            logger.debug(f"{target.name} already active")
            return None

        if current is not None:
            logger.info(f"Switching {current.name} -> {target.name}")
            current.disconnect()

        self.aggregator.bind(target)
        return target

    async def switch_exchange(
        self,
        name: str,
        config: AppConfig,
        on_bound: Optional[Callable[[], None]] = None
    ) -> bool:
        """
        Make name the active exchange.

        Args:
            name: Exchange name
            config: User configuration passed to connect()
            on_bound: Called once the new adapter is bound, before it connects

        Returns:
            True if a switch happened, False if it was already active

        Raises:
            ValueError: If the exchange is not supported
        """
        target = self._activate(name)
        if target is None:
            return False

        if on_bound is not None:
            on_bound()
        await target.connect(config)
        return True

    # ============================================
    # Lifecycle Management
    # ============================================

    async def shutdown_all(self) -> None:
        """Disconnect every adapter and wait for their sockets to close."""
        logger.info("Shutting down all exchanges...")

        self.aggregator.unbind()
        results = await asyncio.gather(
            *(adapter.shutdown() for adapter in self.exchanges.values()),
            return_exceptions=True
        )
        for adapter, result in zip(self.exchanges.values(), results):
            if isinstance(result, Exception):
                logger.error(f"✗ Error shutting down {adapter.name}: {result}")

        logger.info("All exchanges shut down")

    # ============================================
    # Utility Methods
    # ============================================

    def __repr__(self) -> str:
        return f"<ExchangeManager(exchanges={list(self.exchanges.keys())})>"

    def __len__(self) -> int:
        return len(self.exchanges)
