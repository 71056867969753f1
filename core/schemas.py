"""
Normalized Data Schemas

This module defines Pydantic models for ticker data.
These schemas provide a unified, exchange-agnostic data format.

Key Principle:
    Regardless of which exchange the data comes from (Bithumb, Upbit,
    Binance), it gets normalized into TickerRecord. The table renderer only
    ever sees TickerRecord.

Models:
    - TickerRecord: Standardized snapshot of one trading pair
    - MarketInfo: Market name entry from an exchange's market list

Unknown Values:
    Every field except symbol and current_price may be absent on the wire.
    Absent, unparseable and NaN values are stored as None, never 0.
"""

import math
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


# ============================================
# Parsing Helpers
# ============================================

def parse_optional_float(value: Any) -> Optional[float]:
    """
    Parse a wire value to float, returning None when it is unknown.

    Args:
        value: String, number or None from an exchange message

    Returns:
        Parsed float, or None for missing, empty, unparseable, NaN or infinite input

    Examples:
        >>> parse_optional_float("2.5")
        2.5
        >>> parse_optional_float("") is None
        True
        >>> parse_optional_float("nan") is None
        True
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_required_float(value: Any, field: str) -> float:
    """
    Parse a wire value that must be present.

    Raises:
        ValueError: If the value is missing or not a finite number
    """
    number = parse_optional_float(value)
    if number is None:
        raise ValueError(f"Missing or invalid required field '{field}': {value!r}")
    return number


# ============================================
# Direction
# ============================================

class PriceDirection(str, Enum):
    """Direction of a price or rate compared to its reference."""

    UP = "up"
    DOWN = "down"
    FLAT = "flat"
    UNKNOWN = "unknown"

    @classmethod
    def compare(cls, value: Optional[float], reference: Optional[float]) -> "PriceDirection":
        if value is None or reference is None:
            return cls.UNKNOWN
        if value > reference:
            return cls.UP
        if value < reference:
            return cls.DOWN
        return cls.FLAT


# ============================================
# Market Info
# ============================================

class MarketInfo(BaseModel):
    """
    Market name entry from an exchange's market list.

    Example:
        >>> MarketInfo(market="KRW-BTC", korean_name="비트코인", english_name="Bitcoin")
    """

    market: str = Field(..., description="Exchange market code", examples=["KRW-BTC"])
    korean_name: str = Field(default="", description="Korean display name")
    english_name: str = Field(default="", description="English display name")

    def name(self, language: str = "ko") -> str:
        """Preferred name for a language, falling back to the other one."""
        if language == "en":
            return self.english_name or self.korean_name
        return self.korean_name or self.english_name


# ============================================
# Ticker Record
# ============================================

class TickerRecord(BaseModel):
    """
    Standardized snapshot of one trading pair on one exchange.

    A record is immutable. Every ticker message produces a brand-new record
    that replaces the previous one for the same symbol.

    Attributes:
        exchange: Source exchange identifier (lowercase)
        symbol: Canonical pair identifier (BASE_QUOTE, e.g. "BTC_KRW")
        display_name: Human readable name from the market list (or the symbol)
        icon: Icon from the user's config
        current_price: Latest trade price
        prev_comparison_price: Previous record's current_price, or the
                               exchange's previous close on first sight
        change_rate_pct: Change vs the 24h/midnight reference, in percent
        change_amount: Absolute change vs the same reference
        high_price: Session high
        low_price: Session low
        prev_close_price: Previous session close
        volume_power: Buy/sell pressure indicator (Bithumb only)
        trade_value: Accumulated traded value in quote currency
        average_purchase_price: User's cost basis (optional)
        timestamp: Exchange event time in UTC (optional)

    Example:
        >>> record = TickerRecord(
        ...     exchange="bithumb",
        ...     symbol="BTC_KRW",
        ...     display_name="비트코인",
        ...     current_price=100_000_000,
        ...     prev_comparison_price=97_500_000,
        ...     change_rate_pct=2.5,
        ... )
        >>> record.direction
        <PriceDirection.UP: 'up'>
    """

    model_config = ConfigDict(frozen=True)

    exchange: str = Field(..., description="Source exchange identifier (lowercase)")
    symbol: str = Field(..., description="Canonical pair identifier", examples=["BTC_KRW"])
    display_name: str = Field(default="", description="Name resolved from the market list")
    icon: str = Field(default=" ", description="Icon from user config")

    current_price: float = Field(..., description="Latest trade price")
    prev_comparison_price: Optional[float] = Field(
        default=None,
        description="Reference for tick-over-tick direction"
    )

    change_rate_pct: Optional[float] = Field(default=None, description="Change vs reference (%)")
    change_amount: Optional[float] = Field(default=None, description="Change vs reference (absolute)")

    high_price: Optional[float] = None
    low_price: Optional[float] = None
    prev_close_price: Optional[float] = None

    volume_power: Optional[float] = Field(
        default=None,
        description="Buy/sell pressure (None when the exchange doesn't report it)"
    )
    trade_value: Optional[float] = Field(default=None, description="Accumulated traded value")

    average_purchase_price: Optional[float] = Field(default=None, description="User cost basis")
    timestamp: Optional[datetime] = Field(default=None, description="Event time in UTC")

    @field_validator("symbol")
    @classmethod
    def validate_symbol(cls, v: str) -> str:
        """Ensure symbol is uppercase"""
        return v.upper()

    @field_validator("exchange")
    @classmethod
    def validate_exchange(cls, v: str) -> str:
        """Ensure exchange is lowercase"""
        return v.lower()

    @computed_field
    @property
    def profit_loss_rate_pct(self) -> Optional[float]:
        """Unrealized P&L vs the cost basis, in percent (None without a cost basis)."""
        if not self.average_purchase_price or self.average_purchase_price <= 0:
            return None
        return (self.current_price - self.average_purchase_price) / self.average_purchase_price * 100

    @property
    def direction(self) -> PriceDirection:
        """Tick-over-tick direction of current_price vs prev_comparison_price."""
        return PriceDirection.compare(self.current_price, self.prev_comparison_price)

    @property
    def change_direction(self) -> PriceDirection:
        """Sign of the reference-relative change rate."""
        return PriceDirection.compare(self.change_rate_pct, 0.0)

    @property
    def base_currency(self) -> str:
        return self.symbol.split("_", 1)[0]

    @property
    def quote_currency(self) -> str:
        parts = self.symbol.split("_", 1)
        return parts[1] if len(parts) > 1 else ""
