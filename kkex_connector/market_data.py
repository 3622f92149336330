"""
KKEX Connector - Market Data Normalizer.

============================================================
PURPOSE
============================================================
Converts raw ticker, trade, kline and depth payloads into
canonical records for an already resolved Market.

UNITS:
- Ticker `date` is in seconds, converted to milliseconds
- Trade `date_ms` is already in milliseconds
- Kline rows carry millisecond open times

Fields the venue does not report stay None, never zero.

============================================================
"""

import logging
from typing import Any, Iterable, Mapping, Optional, Sequence

from .catalog import MarketCatalog
from .exceptions import DataContractError, ValidationError
from .formatting import filter_by_since_limit, iso8601, safe_decimal, safe_integer, safe_string, to_decimal
from .models import Candle, Market, OrderBook, Ticker, TickerListing, Timeframe, Trade


logger = logging.getLogger(__name__)


# Our timeframe -> venue kline type
TIMEFRAMES = {
    Timeframe.M1: "1min",
    Timeframe.M5: "5min",
    Timeframe.M15: "15min",
    Timeframe.M30: "30min",
    Timeframe.H1: "1hour",
    Timeframe.H12: "12hour",
    Timeframe.D1: "day",
    Timeframe.W1: "1week",
}

DEFAULT_OHLCV_LIMIT = 5
DEFAULT_OHLCV_LOOKBACK_MS = 60 * 1000


def kline_type(timeframe: Any) -> str:
    """Resolve a Timeframe or its string value to the venue kline type."""
    try:
        key = timeframe if isinstance(timeframe, Timeframe) else Timeframe(timeframe)
    except ValueError:
        supported = ", ".join(t.value for t in TIMEFRAMES)
        raise ValidationError(
            f"Unsupported timeframe {timeframe!r}, expected one of: {supported}",
            argument="timeframe",
        )
    return TIMEFRAMES[key]


def _non_negative(value: Any, field_name: str, raw: Any) -> None:
    if value is not None and value < 0:
        raise DataContractError(
            f"Field {field_name!r} is negative: {value}",
            field_name=field_name,
            raw_data=raw,
        )


# ============================================================
# TICKER LISTING
# ============================================================

def decode_ticker_listing(entries: Iterable[Mapping[str, Any]]) -> list[TickerListing]:
    """
    Turn the venue's single-key entries ({"ENUBTC": {...}}) into
    (pair_id, payload) pairs, preserving listing order.
    """
    result = []
    for entry in entries:
        if not isinstance(entry, Mapping):
            raise DataContractError(
                "Ticker listing entry is not an object",
                field_name="tickers",
                raw_data=entry,
            )
        for pair_id, payload in entry.items():
            result.append(TickerListing(pair_id=pair_id, payload=payload or {}))
    return result


# ============================================================
# TICKERS
# ============================================================

def parse_ticker(ticker: Mapping[str, Any], market: Optional[Market] = None) -> Ticker:
    """Normalize one ticker. `date` (seconds) becomes a millisecond timestamp."""
    timestamp = safe_integer(ticker, "date")
    if timestamp is not None:
        timestamp *= 1000
    _non_negative(timestamp, "date", ticker)

    last = safe_decimal(ticker, "last")
    return Ticker(
        symbol=market.symbol if market is not None else None,
        timestamp=timestamp,
        datetime=iso8601(timestamp),
        high=safe_decimal(ticker, "high"),
        low=safe_decimal(ticker, "low"),
        bid=safe_decimal(ticker, "buy"),
        ask=safe_decimal(ticker, "sell"),
        last=last,
        close=last,
        base_volume=safe_decimal(ticker, "vol"),
        info=ticker,
    )


def parse_ticker_response(response: Mapping[str, Any], market: Market) -> Ticker:
    """Single ticker endpoint: {"date": ..., "ticker": {...}}."""
    if "ticker" not in response:
        raise DataContractError("Ticker response has no 'ticker' field", field_name="ticker", raw_data=response)
    merged = dict(response["ticker"] or {})
    merged.update({k: v for k, v in response.items() if k != "ticker"})
    return parse_ticker(merged, market)


def parse_tickers_response(
    response: Mapping[str, Any],
    catalog: MarketCatalog,
    symbols: Optional[Sequence[str]] = None,
) -> dict[str, Ticker]:
    """
    Bulk ticker listing keyed by canonical symbol.

    Pairs missing from the catalog (or lacking a symbol) are skipped.
    """
    if "tickers" not in response:
        raise DataContractError("Tickers response has no 'tickers' field", field_name="tickers", raw_data=response)
    shared = {k: v for k, v in response.items() if k != "tickers"}

    result: dict[str, Ticker] = {}
    for listing in decode_ticker_listing(response["tickers"] or []):
        market = catalog.market_by_id(listing.pair_id)
        if market is None or not market.symbol:
            logger.debug(f"[kkex] Skipping ticker for unknown pair {listing.pair_id}")
            continue
        if symbols is not None and market.symbol not in symbols:
            continue
        merged = dict(listing.payload)
        merged.update(shared)
        result[market.symbol] = parse_ticker(merged, market)
    return result


# ============================================================
# TRADES
# ============================================================

def parse_trade(trade: Mapping[str, Any], market: Optional[Market] = None) -> Trade:
    """
    Normalize one public trade.

    The feed does not say which order type produced the trade, so type
    is always "limit". No fee is reported.
    """
    timestamp = safe_integer(trade, "date_ms")
    price = safe_decimal(trade, "price")
    amount = safe_decimal(trade, "amount")
    _non_negative(price, "price", trade)
    _non_negative(amount, "amount", trade)

    return Trade(
        id=safe_string(trade, "tid"),
        symbol=market.symbol if market is not None else None,
        timestamp=timestamp,
        datetime=iso8601(timestamp),
        side=safe_string(trade, "type"),
        price=price,
        amount=amount,
        info=trade,
    )


def parse_trades(
    trades: Iterable[Mapping[str, Any]],
    market: Optional[Market] = None,
    since: Optional[int] = None,
    limit: Optional[int] = None,
) -> list[Trade]:
    parsed = [parse_trade(t, market) for t in trades]
    parsed.sort(key=lambda t: t.timestamp if t.timestamp is not None else 0)
    return filter_by_since_limit(parsed, since, limit)


# ============================================================
# OHLCV
# ============================================================

def parse_ohlcv(row: Sequence[Any]) -> Candle:
    """Kline row: [open_time_ms, open, high, low, close, volume, ...]."""
    if len(row) < 6:
        raise DataContractError(f"Kline row has {len(row)} columns, expected 6", field_name="kline", raw_data=row)
    timestamp = to_decimal(row[0], "timestamp")
    values = [to_decimal(v, name) for v, name in zip(row[1:6], ("open", "high", "low", "close", "volume"))]
    if timestamp is None or any(v is None for v in values):
        raise DataContractError("Kline row has empty columns", field_name="kline", raw_data=row)
    return Candle(
        timestamp=int(timestamp),
        open=values[0],
        high=values[1],
        low=values[2],
        close=values[3],
        volume=values[4],
    )


def parse_ohlcvs(
    rows: Iterable[Sequence[Any]],
    since: Optional[int] = None,
    limit: Optional[int] = None,
) -> list[Candle]:
    candles = sorted((parse_ohlcv(r) for r in rows), key=lambda c: c.timestamp)
    return filter_by_since_limit(candles, since, limit)


# ============================================================
# ORDER BOOK
# ============================================================

def _parse_levels(levels: Iterable[Sequence[Any]], side: str) -> list[tuple]:
    parsed = []
    for level in levels or []:
        if len(level) < 2:
            raise DataContractError(f"Malformed {side} level", field_name=side, raw_data=level)
        price = to_decimal(level[0], f"{side}.price")
        amount = to_decimal(level[1], f"{side}.amount")
        if price is None or amount is None:
            raise DataContractError(f"Empty {side} level", field_name=side, raw_data=level)
        parsed.append((price, amount))
    return parsed


def parse_order_book(response: Mapping[str, Any], market: Optional[Market] = None) -> OrderBook:
    """Depth snapshot, bids best (highest) first, asks best (lowest) first."""
    bids = sorted(_parse_levels(response.get("bids"), "bids"), key=lambda lv: lv[0], reverse=True)
    asks = sorted(_parse_levels(response.get("asks"), "asks"), key=lambda lv: lv[0])
    return OrderBook(
        symbol=market.symbol if market is not None else None,
        bids=tuple(bids),
        asks=tuple(asks),
        info=response,
    )
