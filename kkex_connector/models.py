"""
Connector Models - Canonical records shared by every normalizer.

Numeric fields are Optional[Decimal]: None means the venue did not
report the value and must never be read as zero.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union


def _str_or_none(value: Optional[Decimal]) -> Optional[str]:
    return str(value) if value is not None else None


class OrderStatus(str, Enum):
    """Canonical order states."""
    OPEN = "open"
    CLOSED = "closed"
    CANCELED = "canceled"


class OrderSide(str, Enum):
    """Order sides."""
    BUY = "buy"
    SELL = "sell"


class OrderType(str, Enum):
    """Order types accepted by create_order."""
    LIMIT = "limit"
    MARKET = "market"


class Timeframe(Enum):
    """Supported candle intervals."""
    M1 = "1m"
    M5 = "5m"
    M15 = "15m"
    M30 = "30m"
    H1 = "1h"
    H12 = "12h"
    D1 = "1d"
    W1 = "1w"


# ============================================================
# MARKETS
# ============================================================

@dataclass(frozen=True)
class MinMax:
    """Inclusive bounds, either side may be unknown."""
    min: Optional[Decimal] = None
    max: Optional[Decimal] = None

    def to_dict(self) -> dict[str, Any]:
        return {"min": _str_or_none(self.min), "max": _str_or_none(self.max)}


@dataclass(frozen=True)
class MarketPrecision:
    """Decimal places for price and amount."""
    price: Optional[int] = None
    amount: Optional[int] = None

    def is_empty(self) -> bool:
        return self.price is None and self.amount is None


@dataclass(frozen=True)
class MarketLimits:
    """Order size limits."""
    amount: Optional[MinMax] = None
    price: Optional[MinMax] = None
    cost: Optional[MinMax] = None

    def is_empty(self) -> bool:
        return self.amount is None and self.price is None and self.cost is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "amount": self.amount.to_dict() if self.amount else None,
            "price": self.price.to_dict() if self.price else None,
            "cost": self.cost.to_dict() if self.cost else None,
        }


@dataclass(frozen=True)
class Market:
    """
    One tradable pair.

    `id` is the venue-native pair symbol (e.g. "ENUBTC"), `symbol` the
    canonical "BASE/QUOTE" form. Unmatched listings carry empty codes
    and an empty symbol.
    """
    id: str
    symbol: str
    base: str
    quote: str
    base_id: str
    quote_id: str
    precision: MarketPrecision = field(default_factory=MarketPrecision)
    limits: MarketLimits = field(default_factory=MarketLimits)
    active: bool = True
    taker: Optional[Decimal] = None
    maker: Optional[Decimal] = None
    info: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "symbol": self.symbol,
            "base": self.base,
            "quote": self.quote,
            "base_id": self.base_id,
            "quote_id": self.quote_id,
            "precision": {"price": self.precision.price, "amount": self.precision.amount},
            "limits": self.limits.to_dict(),
            "active": self.active,
            "taker": _str_or_none(self.taker),
            "maker": _str_or_none(self.maker),
        }


@dataclass(frozen=True)
class TickerListing:
    """One decoded entry of the venue ticker listing."""
    pair_id: str
    payload: Mapping[str, Any]


# ============================================================
# MARKET DATA
# ============================================================

@dataclass(frozen=True)
class Ticker:
    """
    Price snapshot.

    Fields the venue never reports stay None.
    """
    symbol: Optional[str]
    timestamp: Optional[int]
    datetime: Optional[str]
    high: Optional[Decimal]
    low: Optional[Decimal]
    bid: Optional[Decimal]
    ask: Optional[Decimal]
    last: Optional[Decimal]
    close: Optional[Decimal]
    base_volume: Optional[Decimal]
    info: Mapping[str, Any]

    bid_volume: Optional[Decimal] = None
    ask_volume: Optional[Decimal] = None
    vwap: Optional[Decimal] = None
    open: Optional[Decimal] = None
    previous_close: Optional[Decimal] = None
    change: Optional[Decimal] = None
    percentage: Optional[Decimal] = None
    average: Optional[Decimal] = None
    quote_volume: Optional[Decimal] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "symbol": self.symbol,
            "timestamp": self.timestamp,
            "datetime": self.datetime,
            "high": _str_or_none(self.high),
            "low": _str_or_none(self.low),
            "bid": _str_or_none(self.bid),
            "ask": _str_or_none(self.ask),
            "last": _str_or_none(self.last),
            "close": _str_or_none(self.close),
            "base_volume": _str_or_none(self.base_volume),
        }


@dataclass(frozen=True)
class Trade:
    """Public trade print."""
    id: Optional[str]
    symbol: Optional[str]
    timestamp: Optional[int]
    datetime: Optional[str]
    side: Optional[str]
    price: Optional[Decimal]
    amount: Optional[Decimal]
    info: Mapping[str, Any]
    type: str = "limit"
    order: Optional[str] = None
    fee: Optional[Decimal] = None


@dataclass(frozen=True)
class Candle:
    """OHLCV row, timestamp in milliseconds."""
    timestamp: int
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal


@dataclass(frozen=True)
class OrderBook:
    """One-shot depth snapshot. Levels are (price, amount)."""
    symbol: Optional[str]
    bids: tuple[tuple[Decimal, Decimal], ...]
    asks: tuple[tuple[Decimal, Decimal], ...]
    info: Mapping[str, Any]
    timestamp: Optional[int] = None
    datetime: Optional[str] = None
    nonce: Optional[int] = None

    @property
    def best_bid(self) -> Optional[tuple[Decimal, Decimal]]:
        return self.bids[0] if self.bids else None

    @property
    def best_ask(self) -> Optional[tuple[Decimal, Decimal]]:
        return self.asks[0] if self.asks else None


# ============================================================
# ACCOUNT
# ============================================================

@dataclass(frozen=True)
class Order:
    """
    Canonical order.

    status is an OrderStatus for known venue codes and the raw code
    otherwise.
    """
    id: int
    symbol: Optional[str]
    side: Optional[str]
    type: str
    status: Union[OrderStatus, str, None]
    price: Optional[Decimal]
    average: Optional[Decimal]
    amount: Optional[Decimal]
    filled: Optional[Decimal]
    remaining: Optional[Decimal]
    cost: Optional[Decimal]
    info: Mapping[str, Any]
    timestamp: Optional[int] = None
    datetime: Optional[str] = None
    last_trade_timestamp: Optional[int] = None
    fee: Optional[Decimal] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        status = self.status.value if isinstance(self.status, OrderStatus) else self.status
        return {
            "id": self.id,
            "symbol": self.symbol,
            "side": self.side,
            "type": self.type,
            "status": status,
            "price": _str_or_none(self.price),
            "average": _str_or_none(self.average),
            "amount": _str_or_none(self.amount),
            "filled": _str_or_none(self.filled),
            "remaining": _str_or_none(self.remaining),
            "cost": _str_or_none(self.cost),
            "timestamp": self.timestamp,
            "datetime": self.datetime,
        }


@dataclass(frozen=True)
class BalanceEntry:
    """Per-currency balance. total is always free + used."""
    free: Decimal
    used: Decimal

    @property
    def total(self) -> Decimal:
        return self.free + self.used


@dataclass(frozen=True)
class Balance:
    """Account balances keyed by canonical currency code."""
    currencies: Mapping[str, BalanceEntry]
    info: Mapping[str, Any]

    def __post_init__(self) -> None:
        object.__setattr__(self, "currencies", MappingProxyType(dict(self.currencies)))

    def __getitem__(self, currency: str) -> BalanceEntry:
        return self.currencies[currency]

    def __contains__(self, currency: object) -> bool:
        return currency in self.currencies

    @property
    def free(self) -> dict[str, Decimal]:
        return {code: entry.free for code, entry in self.currencies.items()}

    @property
    def used(self) -> dict[str, Decimal]:
        return {code: entry.used for code, entry in self.currencies.items()}

    @property
    def total(self) -> dict[str, Decimal]:
        return {code: entry.total for code, entry in self.currencies.items()}


# ============================================================
# VENUE METADATA
# ============================================================

@dataclass(frozen=True)
class VenueMetadata:
    """Static description of the venue."""
    name: str
    display_name: str
    version: str
    countries: tuple[str, ...]
    public_url: str
    private_url: str
    www_url: str
    documentation_url: str
    timeframes: tuple[str, ...]
    taker_fee: Decimal
    maker_fee: Decimal

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "display_name": self.display_name,
            "version": self.version,
            "countries": list(self.countries),
            "public_url": self.public_url,
            "private_url": self.private_url,
            "www_url": self.www_url,
            "documentation_url": self.documentation_url,
            "timeframes": list(self.timeframes),
            "taker_fee": str(self.taker_fee),
            "maker_fee": str(self.maker_fee),
        }
