"""
Coinboard - Live Crypto Ticker in the Terminal

Streams ticker data from one exchange at a time (Bithumb, Upbit, Binance)
and draws it as a live table.

Commands (type and press Enter):
    /1, /2, /3 (or 1, 2, 3)  Switch exchange
    q, quit                  Quit

Usage:
    coinboard --sort-by rate --exchange upbit
    coinboard --config ./config.json --limit 20

Logs go to ~/.coinboard/coinboard.log unless LOG_FILE is set, because the
table owns the terminal.
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Set

from rich.console import Console
from rich.text import Text

from core.aggregator import Aggregator
from core.config import (
    CONFIG_DIR,
    KNOWN_EXCHANGES,
    VALID_LOG_LEVELS,
    VALID_SORT_KEYS,
    AppConfig,
    ConfigurationError,
    ensure_config_file,
    load_app_config,
    settings,
    validate_configuration,
)
from core.exchange_interface import ExchangeAdapter
from core.exchange_manager import ExchangeManager
from core.logging import get_logger, setup_logging
from exchanges.binance import BinanceAdapter
from exchanges.bithumb import BithumbAdapter
from exchanges.upbit import UpbitAdapter
from services.notifier import ChangeRateNotifier, terminal_bell_sink
from services.render_scheduler import RenderScheduler
from app.ui import TableRenderer


LOG_FILE_NAME = "coinboard.log"
QUIT_COMMANDS = ("q", "quit")

logger = get_logger(__name__)


def build_adapters(on_update, notifier: Optional[ChangeRateNotifier] = None) -> List[ExchangeAdapter]:
    """Adapters in menu order."""
    return [
        BithumbAdapter(on_update=on_update, notifier=notifier),
        UpbitAdapter(on_update=on_update, notifier=notifier),
        BinanceAdapter(on_update=on_update, notifier=notifier),
    ]


# ============================================
# Application
# ============================================

class TickerApp:
    """
    Wires adapters, aggregator, render scheduler and renderer together.

    Data Flow:
        socket frame -> adapter.handle_message -> upsert -> scheduler.signal
        scheduler (debounced) -> draw() -> aggregator.snapshot() -> renderer

    Example:
        >>> app = TickerApp(load_app_config())
        >>> asyncio.run(app.run())
    """

    def __init__(
        self,
        app_config: AppConfig,
        console: Optional[Console] = None,
        adapters: Optional[Sequence[ExchangeAdapter]] = None
    ) -> None:
        self.config = app_config
        self.console = console or Console()
        self.aggregator = Aggregator()
        self.scheduler = RenderScheduler(self.draw, interval=settings.render_interval)
        self.notifier = ChangeRateNotifier(
            terminal_bell_sink,
            step_pct=settings.notify_step_pct,
            enabled=settings.notifications_enabled
        )

        if adapters is None:
            adapters = build_adapters(self.scheduler.signal, self.notifier)
        self.manager = ExchangeManager(self.aggregator, adapters)

        self.renderer = TableRenderer(
            self.console,
            sort_by=settings.sort_by,
            limit=settings.display_limit,
            exchanges=[adapter.display_name for adapter in adapters]
        )

        self._stop = asyncio.Event()
        self._switch_tasks: Set[asyncio.Task] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._reading_stdin = False
        self._signals: List[int] = []

    def draw(self) -> None:
        self.renderer.render_snapshot(self.aggregator.active_name, self.aggregator.snapshot())

    # ============================================
    # Commands
    # ============================================

    def handle_command(self, line: str) -> None:
        """
        Execute one line of user input.

        Unknown or out-of-range commands only redraw the screen.
        """
        command = line.strip().lower()

        if command in QUIT_COMMANDS:
            self.request_stop()
            return

        number = command[1:] if command.startswith("/") else command
        if number.isdigit():
            adapter = self.manager.exchange_at(int(number))
            if adapter is not None:
                self.request_switch(adapter.name)
                return
            logger.warning(f"No exchange #{number} (1-{len(self.manager)})")
        elif command:
            logger.info(f"Unknown command: {command!r}")

        self.scheduler.signal()

    def request_switch(self, name: str) -> None:
        """Start switching to name in the background."""
        task = asyncio.get_running_loop().create_task(
            self.switch_to(name), name=f"switch-{name}"
        )
        self._switch_tasks.add(task)
        task.add_done_callback(self._on_switch_done)

    def _on_switch_done(self, task: asyncio.Task) -> None:
        self._switch_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"✗ Exchange switch failed: {error!r}")

    async def switch_to(self, name: str) -> bool:
        """
        Switch the active exchange and draw right away.

        The placeholder is drawn as soon as the previous adapter is
        disconnected; rows appear as the new adapter's data arrives.

        Returns:
            True if a switch happened, False if name was already active
        """
        switched = await self.manager.switch_exchange(
            name, self.config, on_bound=self.scheduler.flush
        )
        if not switched:
            self.scheduler.flush()
        return switched

    def request_stop(self) -> None:
        if not self._stop.is_set():
            logger.info("Stop requested")
            self._stop.set()

    # ============================================
    # Lifecycle
    # ============================================

    async def run(self, exchange: Optional[str] = None) -> None:
        """Run until the user quits, stdin closes, or SIGINT/SIGTERM arrives."""
        self._loop = asyncio.get_running_loop()
        self._install_signal_handlers()
        self._install_input()
        self.scheduler.install_resize_handler()

        try:
            self.request_switch(exchange or settings.default_exchange)
            await self._stop.wait()
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        """Disconnect every adapter and stop drawing."""
        self._remove_input()
        self._remove_signal_handlers()
        self.scheduler.remove_resize_handler()

        pending = list(self._switch_tasks)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        await self.manager.shutdown_all()
        self.scheduler.cancel()
        logger.info("Coinboard stopped")

    # ============================================
    # Input & Signals
    # ============================================

    def _on_stdin(self) -> None:
        line = sys.stdin.readline()
        if line == "":
            logger.info("stdin closed")
            self.request_stop()
            return
        self.handle_command(line)

    def _install_input(self) -> None:
        try:
            self._loop.add_reader(sys.stdin.fileno(), self._on_stdin)
        except (NotImplementedError, OSError, ValueError) as e:
            logger.warning(f"Keyboard input unavailable: {e}")
            return
        self._reading_stdin = True

    def _remove_input(self) -> None:
        if self._reading_stdin and self._loop is not None:
            self._loop.remove_reader(sys.stdin.fileno())
            self._reading_stdin = False

    def _install_signal_handlers(self) -> None:
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                self._loop.add_signal_handler(sig, self.request_stop)
            except (NotImplementedError, RuntimeError) as e:
                logger.warning(f"Signal handler for {sig!r} unavailable: {e}")
                continue
            self._signals.append(sig)

    def _remove_signal_handlers(self) -> None:
        if self._loop is None:
            return
        for sig in self._signals:
            self._loop.remove_signal_handler(sig)
        self._signals.clear()


# ============================================
# Command Line
# ============================================

def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="coinboard",
        description="Live cryptocurrency ticker for Bithumb, Upbit and Binance"
    )
    parser.add_argument("--sort-by", choices=VALID_SORT_KEYS, help="Table order")
    parser.add_argument("--limit", type=int, help="Maximum rows (0 = fit terminal)")
    parser.add_argument("--exchange", choices=KNOWN_EXCHANGES, help="Exchange shown at startup")
    parser.add_argument("--config", help="Path to the coin config JSON file")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=VALID_LOG_LEVELS,
        help="Logging level"
    )
    return parser.parse_args(argv)


def apply_overrides(args: argparse.Namespace) -> None:
    """Command line options take precedence over environment settings."""
    if args.sort_by is not None:
        settings.sort_by = args.sort_by
    if args.limit is not None:
        settings.display_limit = args.limit
    if args.exchange is not None:
        settings.default_exchange = args.exchange
    if args.config is not None:
        settings.config_path = args.config
    if args.log_level is not None:
        settings.log_level = args.log_level


def log_file_path() -> Path:
    if settings.log_file:
        return Path(settings.log_file).expanduser()
    return CONFIG_DIR / LOG_FILE_NAME


def bootstrap() -> AppConfig:
    """
    Prepare logging and load the coin config.

    Raises:
        ConfigurationError: If the config file is missing or malformed
        ValueError: If a setting is invalid
    """
    path = log_file_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigurationError(f"Cannot create log directory {path.parent}: {e}") from e
    setup_logging(log_level=settings.log_level, log_file=str(path))

    if not settings.config_path:
        ensure_config_file()
    app_config = load_app_config(settings.config_path or None)
    validate_configuration()

    if not app_config.coins:
        raise ConfigurationError("No coins configured")

    logger.info(f"Loaded {len(app_config.coins)} coin(s)")
    return app_config


def main(argv: Optional[Sequence[str]] = None) -> int:
    apply_overrides(parse_args(argv))

    try:
        app_config = bootstrap()
    except ValueError as e:
        error = Text("Configuration error: ", style="bold red")
        error.append(str(e))
        Console(stderr=True).print(error)
        return 1

    app = TickerApp(app_config)
    try:
        asyncio.run(app.run())
    except KeyboardInterrupt:
        logger.info("Interrupted")

    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
