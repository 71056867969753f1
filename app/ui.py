"""
Terminal Presentation Layer

Turns a ticker snapshot into a colored table on the terminal using rich.

Contract:
    render_snapshot(exchange_name, snapshot) is synchronous, reads the
    snapshot only and never mutates it. The render scheduler calls it.

Colors (Korean market convention for price ticks):
    - Price above previous tick: bright red, below: bright cyan
    - Change rate / P&L positive: green, negative: red
    - Unknown values render as "-"
"""

import math
from typing import List, Mapping, Optional, Sequence, Tuple

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from core.schemas import PriceDirection, TickerRecord


PRICE_STYLES = {
    PriceDirection.UP: "bright_red",
    PriceDirection.DOWN: "bright_cyan",
    PriceDirection.FLAT: "white",
    PriceDirection.UNKNOWN: "white",
}

RATE_STYLES = {
    PriceDirection.UP: "green",
    PriceDirection.DOWN: "red",
    PriceDirection.FLAT: "white",
    PriceDirection.UNKNOWN: "white",
}

HEADER_ROWS = 10  # header, sentiment, table borders, notice, menu, prompt

COLUMNS = [
    ("Coin", "left"),
    ("Price", "right"),
    ("Vol.Power", "right"),
    ("P&L", "right"),
    ("Change", "right"),
    ("Change Amt", "right"),
    ("Prev Close", "right"),
    ("High", "right"),
    ("Low", "right"),
]


# ============================================
# Formatting Helpers
# ============================================

def format_price(value: Optional[float]) -> str:
    """
    Format a price with thousands separators.

    Large prices drop decimals; small ones keep up to 8 significant digits.

    Examples:
        >>> format_price(100000000.0)
        '100,000,000'
        >>> format_price(0.00123)
        '0.00123'
    """
    if value is None:
        return "-"
    if abs(value) >= 100:
        return f"{value:,.0f}"
    if abs(value) >= 1:
        return f"{value:,.2f}".rstrip("0").rstrip(".")
    return f"{value:.8f}".rstrip("0").rstrip(".") or "0"


def format_pct(value: Optional[float], signed: bool = False) -> str:
    if value is None:
        return "-"
    return f"{value:+.2f}%" if signed else f"{value:.2f}%"


def pct_from(value: Optional[float], reference: Optional[float]) -> Optional[float]:
    """Percent distance of value from reference (None when unknown)."""
    if value is None or reference is None or reference <= 0:
        return None
    return (value - reference) / reference * 100


def rate_style(value: Optional[float]) -> str:
    return RATE_STYLES[PriceDirection.compare(value, 0.0)]


def sort_records(records: Sequence[TickerRecord], sort_by: str) -> List[TickerRecord]:
    """
    Order rows for display.

    "name" sorts by symbol; "rate" sorts by change rate descending with
    unknown rates last.
    """
    if sort_by == "name":
        return sorted(records, key=lambda r: r.symbol)
    return sorted(
        records,
        key=lambda r: (r.change_rate_pct is None, -(r.change_rate_pct or 0.0))
    )


def market_sentiment(records: Sequence[TickerRecord]) -> Tuple[str, str]:
    """
    Trade-value weighted average change rate across all rows.

    Returns:
        (label, style) tuple
    """
    total_weighted = 0.0
    total_value = 0.0
    for record in records:
        rate = record.change_rate_pct
        value = record.trade_value
        if rate is None or value is None or value <= 0:
            continue
        total_weighted += rate * value
        total_value += value

    if total_value <= 0:
        return "Market: insufficient data", "grey50"

    average = total_weighted / total_value
    if average > 0.5:
        label, style = "Market: strong uptrend 🚀", "green"
    elif average > 0:
        label, style = "Market: uptrend 📈", "green"
    elif average < -0.5:
        label, style = "Market: strong downtrend 📉", "red"
    elif average < 0:
        label, style = "Market: downtrend 📉", "red"
    else:
        label, style = "Market: flat ↔️", "white"

    label = f"{label} ({average:+.2f}%)"

    powers = [r.volume_power for r in records if r.volume_power is not None]
    if powers:
        label += f" | Vol.Power: {sum(powers) / len(powers):.2f}"

    return label, style


# ============================================
# Renderer
# ============================================

class TableRenderer:
    """
    Draws the ticker table for one snapshot.

    Attributes:
        console: rich Console to draw on
        sort_by: "rate" or "name"
        limit: Max rows (0 = terminal height - HEADER_ROWS)
        exchanges: Menu entries, in menu order

    Example:
        >>> renderer = TableRenderer(Console(), sort_by="rate", limit=0,
        ...                          exchanges=["Bithumb", "Upbit", "Binance"])
        >>> renderer.render_snapshot("Bithumb", aggregator.snapshot())
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        sort_by: str = "rate",
        limit: int = 0,
        exchanges: Sequence[str] = ()
    ) -> None:
        self.console = console or Console()
        self.sort_by = sort_by if sort_by in ("name", "rate") else "rate"
        self.limit = max(limit, 0)
        self.exchanges = list(exchanges)

    def display_limit(self) -> int:
        if self.limit > 0:
            return self.limit
        return max(1, self.console.size.height - HEADER_ROWS)

    def menu(self) -> Text:
        text = Text("  ")
        text.append("Menu:", style="bold")
        for number, name in enumerate(self.exchanges, start=1):
            text.append(" ")
            text.append(f"/{number}", style="cyan")
            text.append(f" {name}")
            if number < len(self.exchanges):
                text.append(" |")
        text.append(" | ")
        text.append("Quit:", style="bold")
        text.append(" ")
        text.append("q", style="red")
        return text

    def render_snapshot(
        self,
        exchange_name: Optional[str],
        snapshot: Mapping[str, TickerRecord]
    ) -> None:
        """Clear the screen and draw the table for snapshot."""
        self.console.clear()

        if exchange_name is None:
            self.console.print(Text("\nNo exchange selected.", style="yellow"))
        elif not snapshot:
            self.console.print(Text(f"\n{exchange_name}: waiting for data...", style="yellow"))
        else:
            self._render_table(exchange_name, list(snapshot.values()))

        self.console.print()
        self.console.print(self.menu())
        self.console.print("> ", end="")

    def _render_table(self, exchange_name: str, records: List[TickerRecord]) -> None:
        rows = sort_records(records, self.sort_by)
        limit = self.display_limit()
        shown = rows[:limit]

        self.console.print(Text(f"{exchange_name} live prices (q to quit)", style="bold"))
        label, style = market_sentiment(records)
        self.console.print(Text(label, style=style))

        table = Table(box=box.SIMPLE_HEAVY, header_style="bright_magenta", expand=True)
        for title, justify in COLUMNS:
            table.add_column(title, justify=justify, no_wrap=True, overflow="ellipsis")

        for record in shown:
            table.add_row(*self._row(record))

        self.console.print(table)

        if len(rows) > limit:
            self.console.print(
                Text(f"Showing {limit} of {len(rows)} symbols.", style="yellow")
            )

    def _row(self, record: TickerRecord) -> List[Text]:
        quote = record.quote_currency
        rate_color = rate_style(record.change_rate_pct)

        pnl = record.profit_loss_rate_pct
        high_pct = pct_from(record.high_price, record.prev_close_price)
        low_pct = pct_from(record.low_price, record.prev_close_price)

        return [
            Text(f"{record.icon} {record.display_name or record.symbol}", style="yellow"),
            Text(f"{format_price(record.current_price)} {quote}".strip(),
                 style=PRICE_STYLES[record.direction]),
            Text(f"{record.volume_power:.2f}" if record.volume_power is not None else "-"),
            Text(format_pct(pnl), style=rate_style(pnl)),
            Text(format_pct(record.change_rate_pct), style=rate_color),
            Text(
                f"{format_price(record.change_amount)} {quote}".strip()
                if record.change_amount is not None else "-",
                style=rate_color
            ),
            Text(format_price(record.prev_close_price)),
            self._extreme(record.high_price, high_pct),
            self._extreme(record.low_price, low_pct),
        ]

    @staticmethod
    def _extreme(price: Optional[float], pct: Optional[float]) -> Text:
        if price is None:
            return Text("-")
        text = Text()
        if pct is not None and not math.isnan(pct):
            text.append(format_pct(pct, signed=True), style=rate_style(pct))
            text.append(" ")
        text.append(f"({format_price(price)})")
        return text
