"""
Change-Rate Notifier

Emits a (title, message) notification when a symbol's change rate crosses
a multiple of the step (5% by default) in either direction.

Rules:
    - level = floor(|rate| / step)
    - Up and down levels are tracked separately per symbol, as high-water marks
    - A positive rate resets the down level, a negative rate resets the up level
    - A notification fires when the level in the current direction rises
      above its stored level
    - Unknown rates are ignored

Delivery is up to the sink: the default one writes a log line.
"""

import math
import sys
from typing import Callable, Dict, Optional

from core.logging import get_logger
from core.schemas import TickerRecord


NotificationSink = Callable[[str, str], None]

_logger = get_logger(__name__)


def log_sink(title: str, message: str) -> None:
    """Deliver a notification as a log line."""
    _logger.warning(f"{title}: {message}")


def terminal_bell_sink(title: str, message: str) -> None:
    """Ring the terminal bell and log the notification."""
    sys.stdout.write("\a")
    sys.stdout.flush()
    log_sink(title, message)


class ChangeRateNotifier:
    """
    Threshold-crossing notifier for reference-relative change rates.

    Example:
        >>> notifier = ChangeRateNotifier(log_sink, step_pct=5.0)
        >>> notifier.observe(record)   # record.change_rate_pct == 5.3 -> notifies
    """

    def __init__(
        self,
        sink: Optional[NotificationSink] = None,
        step_pct: float = 5.0,
        enabled: bool = True
    ) -> None:
        if step_pct <= 0:
            raise ValueError(f"step_pct must be positive, got {step_pct}")
        self._sink = sink or log_sink
        self.step_pct = step_pct
        self.enabled = enabled
        self._up_levels: Dict[str, int] = {}
        self._down_levels: Dict[str, int] = {}

    def observe(self, record: TickerRecord) -> bool:
        """
        Check a new record against the stored levels.

        Returns:
            True if a notification was emitted
        """
        rate = record.change_rate_pct
        if not self.enabled or rate is None or rate == 0:
            return False

        level = math.floor(abs(rate) / self.step_pct)
        key = record.symbol

        if rate > 0:
            self._down_levels.pop(key, None)
            if level >= 1 and level > self._up_levels.get(key, 0):
                self._up_levels[key] = level
                self._emit(record, "up", level)
                return True
        else:
            self._up_levels.pop(key, None)
            if level >= 1 and level > self._down_levels.get(key, 0):
                self._down_levels[key] = level
                self._emit(record, "down", level)
                return True

        return False

    def reset(self) -> None:
        """Forget all levels (on disconnect or exchange switch)."""
        self._up_levels.clear()
        self._down_levels.clear()

    def _emit(self, record: TickerRecord, direction: str, level: int) -> None:
        threshold = level * self.step_pct
        sign = "+" if direction == "up" else "-"
        title = f"{record.display_name or record.symbol} {sign}{threshold:g}%"
        message = (
            f"{record.symbol} on {record.exchange} is {record.change_rate_pct:+.2f}% "
            f"at {record.current_price:,.8g}"
        )
        self._sink(title, message)
