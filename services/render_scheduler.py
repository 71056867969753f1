"""
Debounced Render Scheduler

Ticker frames can arrive many times per second across dozens of symbols,
while a terminal redraw is comparatively expensive. The scheduler coalesces
bursts of "new data" signals into one redraw per quiescence window.

Algorithm:
    - signal(): if no redraw is pending, schedule one after `interval` seconds.
      Signals arriving while one is pending are absorbed (the timer is
      neither reset nor stacked).
    - When the timer fires the redraw runs, then the pending flag clears so
      the next signal schedules a fresh redraw.
    - Terminal resize (SIGWINCH) goes through the same signal() path.

Everything runs on the asyncio event loop: redraws never overlap and the
redraw callback must be synchronous.
"""

import asyncio
import signal
from typing import Callable, Optional

from core.logging import get_logger


class RenderScheduler:
    """
    Coalesces redraw requests into one call per window.

    Attributes:
        interval: Quiescence window in seconds
        redraw_count: Number of redraws executed so far

    Example:
        >>> scheduler = RenderScheduler(app.draw, interval=0.1)
        >>> adapter = BithumbAdapter(on_update=scheduler.signal)
    """

    def __init__(self, render: Callable[[], None], interval: float = 0.1) -> None:
        self._render = render
        self.interval = interval
        self.redraw_count = 0
        self._handle: Optional[asyncio.TimerHandle] = None
        self._resize_loop: Optional[asyncio.AbstractEventLoop] = None
        self._logger = get_logger(__name__)

    @property
    def pending(self) -> bool:
        """True while a redraw is scheduled but has not run yet."""
        return self._handle is not None

    def signal(self) -> None:
        """Request a redraw; absorbed if one is already pending."""
        if self._handle is not None:
            return
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.interval, self._fire)

    def cancel(self) -> None:
        """Drop a pending redraw, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def flush(self) -> None:
        """Redraw right now, replacing any pending redraw."""
        self.cancel()
        self._run()

    def _fire(self) -> None:
        try:
            self._run()
        finally:
            self._handle = None

    def _run(self) -> None:
        try:
            self._render()
        except Exception as e:
            self._logger.error(f"Redraw failed: {e}", exc_info=True)
        finally:
            self.redraw_count += 1

    # ============================================
    # Terminal Resize
    # ============================================

    def install_resize_handler(self) -> bool:
        """
        Route SIGWINCH into signal().

        Returns:
            True if installed, False where the platform has no SIGWINCH
        """
        sigwinch = getattr(signal, "SIGWINCH", None)
        if sigwinch is None:
            return False

        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(sigwinch, self.signal)
        except (NotImplementedError, RuntimeError, ValueError) as e:
            self._logger.warning(f"Resize handler unavailable: {e}")
            return False

        self._resize_loop = loop
        return True

    def remove_resize_handler(self) -> None:
        sigwinch = getattr(signal, "SIGWINCH", None)
        if self._resize_loop is not None and sigwinch is not None:
            self._resize_loop.remove_signal_handler(sigwinch)
            self._resize_loop = None
