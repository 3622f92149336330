"""
KKEX Connector - Order and Balance Normalizer.

============================================================
PURPOSE
============================================================
Converts raw order payloads from the trade, order_info and
order_history endpoints into canonical Order records, and the
userinfo payload into a Balance.

STATUS MAPPING:
| venue code | canonical |
|------------|-----------|
| -1, 4      | canceled  |
| 0, 1, 3    | open      |
| 2          | closed    |
Unknown codes are returned unchanged.

DERIVED FIELDS:
- remaining = amount - filled
- cost = average * filled
Either is None when an operand is None.

============================================================
"""

from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping, Optional

from .exceptions import DataContractError
from .formatting import filter_by_since_limit, iso8601, safe_decimal, safe_integer, to_decimal
from .models import Balance, BalanceEntry, Market, Order, OrderStatus


ORDER_STATUSES = {
    "-1": OrderStatus.CANCELED,
    "0": OrderStatus.OPEN,
    "1": OrderStatus.OPEN,
    "2": OrderStatus.CLOSED,
    "3": OrderStatus.OPEN,
    "4": OrderStatus.CANCELED,
}

# Logical attribute -> raw field names, probed in order
ORDER_FIELD_CANDIDATES: dict[str, tuple[str, ...]] = {
    "id": ("order_id", "id"),
    "side": ("side", "type"),
    "average": ("price_avg", "avg_price"),
}


def parse_order_status(status: Any) -> Any:
    """Map a venue status code; unknown codes pass through unchanged."""
    if status is None:
        return None
    return ORDER_STATUSES.get(str(status).strip(), status)


def probe_field(raw: Mapping[str, Any], attribute: str) -> tuple[Optional[str], Any]:
    """
    Return (field_name, value) for the first candidate of `attribute`
    present in `raw` with a non-null value, or (None, None).
    """
    for name in ORDER_FIELD_CANDIDATES[attribute]:
        if raw.get(name) is not None:
            return name, raw[name]
    return None, None


def parse_order_id(raw: Mapping[str, Any]) -> int:
    name, value = probe_field(raw, "id")
    if name is None:
        raise DataContractError(
            f"Order has none of the id fields {ORDER_FIELD_CANDIDATES['id']}",
            field_name="order_id",
            raw_data=raw,
        )
    if isinstance(value, bool):
        raise DataContractError(f"Order id is not numeric: {value!r}", field_name=name, raw_data=raw)
    try:
        return int(str(value).strip())
    except ValueError as e:
        raise DataContractError(
            f"Order id is not numeric: {value!r}",
            field_name=name,
            raw_data=raw,
            original_error=e,
        )


def _difference(a: Optional[Decimal], b: Optional[Decimal]) -> Optional[Decimal]:
    if a is None or b is None:
        return None
    return a - b


def _product(a: Optional[Decimal], b: Optional[Decimal]) -> Optional[Decimal]:
    if a is None or b is None:
        return None
    return a * b


def parse_order(order: Mapping[str, Any], market: Optional[Market] = None) -> Order:
    """Normalize one order payload."""
    _, side = probe_field(order, "side")
    average_field, average = probe_field(order, "average")
    average = to_decimal(average, average_field)

    # Some endpoints omit amount entirely
    amount = safe_decimal(order, "amount") if "amount" in order else None
    filled = safe_decimal(order, "deal_amount")

    timestamp = safe_integer(order, "create_date") if "create_date" in order else None

    return Order(
        id=parse_order_id(order),
        symbol=market.symbol if market is not None else None,
        side=str(side) if side is not None else None,
        type="limit",
        status=parse_order_status(order.get("status")),
        price=safe_decimal(order, "price"),
        average=average,
        amount=amount,
        filled=filled,
        remaining=_difference(amount, filled),
        cost=_product(average, filled),
        timestamp=timestamp,
        datetime=iso8601(timestamp),
        info=order,
    )


def parse_orders(
    orders: Iterable[Mapping[str, Any]],
    market: Optional[Market] = None,
    since: Optional[int] = None,
    limit: Optional[int] = None,
) -> list[Order]:
    """Parse, order oldest first, then keep orders from `since` and the most recent `limit`."""
    parsed = [parse_order(o, market) for o in orders or []]
    parsed.sort(key=lambda o: o.timestamp if o.timestamp is not None else 0)
    return filter_by_since_limit(parsed, since, limit)


# ============================================================
# BALANCE
# ============================================================

def parse_balance(
    response: Mapping[str, Any],
    normalize_currency: Callable[[str], str],
) -> Balance:
    """
    userinfo payload: {"info": {"funds": {"free": {...}, "freezed": {...}}}}.

    Currencies with no frozen entry have used = 0.
    """
    info = response.get("info")
    if not isinstance(info, Mapping) or not isinstance(info.get("funds"), Mapping):
        raise DataContractError("Balance response has no info.funds", field_name="funds", raw_data=response)
    funds = info["funds"]
    free_map = funds.get("free") or {}
    frozen_map = funds.get("freezed") or {}

    currencies: dict[str, BalanceEntry] = {}
    for currency, free_raw in free_map.items():
        code = normalize_currency(currency.upper())
        free = to_decimal(free_raw, f"free.{currency}")
        used = to_decimal(frozen_map.get(currency), f"freezed.{currency}")
        currencies[code] = BalanceEntry(
            free=free if free is not None else Decimal("0"),
            used=used if used is not None else Decimal("0"),
        )
    return Balance(currencies=currencies, info=response)
