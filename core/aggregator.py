"""
Aggregator - Read Side of the Active Exchange

The aggregator is the only place the renderer reads ticker data from. It is
bound to exactly one adapter at a time (the active exchange) and exposes a
point-in-time snapshot of that adapter's records.

Ownership:
    - Writer: the active adapter (upserts on its message handler)
    - Reader: the render scheduler's redraw (snapshot())

All of this runs on one asyncio event loop, so a snapshot is always taken
between two upserts and never sees a half-applied switch: the old adapter's
records are cleared synchronously by disconnect() before the new one is bound.
"""

from types import MappingProxyType
from typing import Mapping, Optional

from core.exchange_interface import ExchangeAdapter
from core.logging import get_logger
from core.schemas import TickerRecord


_EMPTY: Mapping[str, TickerRecord] = MappingProxyType({})


class Aggregator:
    """
    Process-wide view of the active adapter's ticker records.

    Example:
        >>> aggregator = Aggregator()
        >>> aggregator.bind(bithumb)
        >>> snapshot = aggregator.snapshot()
        >>> snapshot["BTC_KRW"].current_price
    """

    def __init__(self) -> None:
        self._active: Optional[ExchangeAdapter] = None
        self._logger = get_logger(__name__)

    def bind(self, adapter: ExchangeAdapter) -> None:
        """Make adapter the single source of data."""
        self._active = adapter
        self._logger.debug(f"Aggregator bound to {adapter.name}")

    def unbind(self) -> None:
        self._active = None

    def is_active(self, adapter: ExchangeAdapter) -> bool:
        return self._active is adapter

    @property
    def active(self) -> Optional[ExchangeAdapter]:
        return self._active

    @property
    def active_name(self) -> Optional[str]:
        """Display name of the active exchange, or None."""
        return self._active.display_name if self._active is not None else None

    def snapshot(self) -> Mapping[str, TickerRecord]:
        """
        Consistent read-only copy of the active adapter's records.

        Returns:
            Mapping of symbol -> TickerRecord (empty when nothing is bound)
        """
        if self._active is None:
            return _EMPTY
        return self._active.get_snapshot()

    def __len__(self) -> int:
        return len(self.snapshot())
