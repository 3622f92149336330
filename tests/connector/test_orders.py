"""
Order Normalizer Tests.

============================================================
PURPOSE
============================================================
Tests for status mapping, field probing, derived order fields
and balance parsing.

============================================================
"""

from decimal import Decimal

import pytest

from kkex_connector import CurrencyNormalizer, DataContractError, OrderStatus, parse_order, parse_order_status
from kkex_connector.orders import ORDER_FIELD_CANDIDATES, parse_balance, parse_orders, probe_field


SCENARIO_ORDER = {
    "order_id": "42",
    "status": "2",
    "amount": "10",
    "deal_amount": "6",
    "price": "100",
    "price_avg": "99",
}


# ============================================================
# STATUS
# ============================================================

class TestOrderStatus:
    """Tests for parse_order_status."""

    @pytest.mark.parametrize("code, expected", [
        (-1, OrderStatus.CANCELED),
        ("-1", OrderStatus.CANCELED),
        (0, OrderStatus.OPEN),
        (1, OrderStatus.OPEN),
        (2, OrderStatus.CLOSED),
        (3, OrderStatus.OPEN),
        (4, OrderStatus.CANCELED),
        ("4", OrderStatus.CANCELED),
    ])
    def test_known_codes(self, code, expected):
        """All six venue codes map to a canonical state."""
        assert parse_order_status(code) == expected

    def test_canonical_values(self):
        """Canonical states compare equal to their names."""
        assert parse_order_status(-1) == "canceled"
        assert parse_order_status(0) == "open"
        assert parse_order_status(2) == "closed"

    def test_unknown_code_passes_through(self):
        """Unknown codes come back unchanged."""
        assert parse_order_status(9) == 9
        assert parse_order_status("9") == "9"

    def test_missing_status(self):
        """No status, no state."""
        assert parse_order_status(None) is None


# ============================================================
# FIELD PROBING
# ============================================================

class TestFieldProbing:
    """Tests for the candidate field table."""

    def test_candidate_order(self):
        """Candidates are listed in priority order."""
        assert ORDER_FIELD_CANDIDATES["id"] == ("order_id", "id")
        assert ORDER_FIELD_CANDIDATES["side"] == ("side", "type")
        assert ORDER_FIELD_CANDIDATES["average"] == ("price_avg", "avg_price")

    def test_first_candidate_preferred(self):
        """order_id beats id when both are present."""
        assert probe_field({"order_id": 1, "id": 2}, "id") == ("order_id", 1)

    def test_fallback_candidate(self):
        """Falls back to the next field name."""
        assert probe_field({"id": 2}, "id") == ("id", 2)
        assert probe_field({"type": "buy"}, "side") == ("type", "buy")

    def test_nothing_found(self):
        """No candidate present."""
        assert probe_field({}, "average") == (None, None)


# ============================================================
# ORDERS
# ============================================================

class TestParseOrder:
    """Tests for parse_order."""

    def test_scenario_order(self):
        """The documented closed order normalizes with derived fields."""
        order = parse_order(SCENARIO_ORDER)

        assert order.id == 42
        assert order.status == OrderStatus.CLOSED
        assert order.amount == Decimal("10")
        assert order.filled == Decimal("6")
        assert order.remaining == Decimal("4")
        assert order.average == Decimal("99")
        assert order.cost == Decimal("594")
        assert order.price == Decimal("100")
        assert order.type == "limit"

    def test_id_field_fallback(self):
        """id is used when order_id is absent."""
        raw = dict(SCENARIO_ORDER)
        del raw["order_id"]
        raw["id"] = 77

        assert parse_order(raw).id == 77

    def test_non_numeric_id_raises(self):
        """Non-numeric ids are a data contract violation, not zero."""
        with pytest.raises(DataContractError):
            parse_order(dict(SCENARIO_ORDER, order_id="abc"))

    def test_missing_id_raises(self):
        """An order without any id field is rejected."""
        raw = dict(SCENARIO_ORDER)
        del raw["order_id"]
        with pytest.raises(DataContractError):
            parse_order(raw)

    def test_side_falls_back_to_type(self):
        """Endpoints that reuse `type` for side are handled."""
        assert parse_order(dict(SCENARIO_ORDER, type="sell")).side == "sell"
        assert parse_order(dict(SCENARIO_ORDER, side="buy", type="sell")).side == "buy"

    def test_missing_amount_leaves_remaining_unknown(self):
        """No amount key: amount and remaining are None."""
        raw = dict(SCENARIO_ORDER)
        del raw["amount"]
        order = parse_order(raw)

        assert order.amount is None
        assert order.remaining is None
        assert order.cost == Decimal("594")

    def test_average_priority(self):
        """price_avg wins over avg_price."""
        order = parse_order(dict(SCENARIO_ORDER, avg_price="50"))
        assert order.average == Decimal("99")

        raw = dict(SCENARIO_ORDER, avg_price="50")
        del raw["price_avg"]
        order = parse_order(raw)
        assert order.average == Decimal("50")
        assert order.cost == Decimal("300")

    def test_missing_average_leaves_cost_unknown(self):
        """No average price: cost is None."""
        raw = dict(SCENARIO_ORDER)
        del raw["price_avg"]
        order = parse_order(raw)

        assert order.average is None
        assert order.cost is None

    def test_missing_filled_leaves_derived_unknown(self):
        """No deal_amount: remaining and cost are None."""
        raw = dict(SCENARIO_ORDER)
        del raw["deal_amount"]
        order = parse_order(raw)

        assert order.filled is None
        assert order.remaining is None
        assert order.cost is None

    def test_create_date(self):
        """create_date is a millisecond timestamp."""
        order = parse_order(dict(SCENARIO_ORDER, create_date=1540350657000))

        assert order.timestamp == 1540350657000
        assert order.datetime == "2018-10-24T03:10:57.000Z"

    def test_parse_orders_limit_keeps_most_recent(self):
        """Orders are sorted by time, and `limit` keeps the newest, as for trades and candles."""
        raws = [dict(SCENARIO_ORDER, order_id=str(i), create_date=1000 + i) for i in (3, 0, 4, 1, 2)]

        assert [o.id for o in parse_orders(raws, limit=3)] == [2, 3, 4]

    def test_parse_orders_since_then_limit(self):
        """since is applied before limit."""
        raws = [dict(SCENARIO_ORDER, order_id=str(i), create_date=1000 + i) for i in range(5)]

        assert [o.id for o in parse_orders(raws, since=1001, limit=2)] == [3, 4]
        assert parse_orders(raws, limit=0) == []


# ============================================================
# BALANCE
# ============================================================

class TestParseBalance:
    """Tests for parse_balance."""

    RESPONSE = {
        "info": {
            "funds": {
                "free": {"btc": "1.5", "enu": "1000"},
                "freezed": {"btc": "0.5", "enu": "0"},
            },
        },
        "result": True,
    }

    def test_free_used_total(self):
        """total = free + used per currency."""
        balance = parse_balance(self.RESPONSE, CurrencyNormalizer().normalize)

        assert balance["BTC"].free == Decimal("1.5")
        assert balance["BTC"].used == Decimal("0.5")
        assert balance["BTC"].total == Decimal("2.0")
        assert balance.total["ENU"] == Decimal("1000")

    def test_info_is_full_payload(self):
        """info carries the raw account payload."""
        balance = parse_balance(self.RESPONSE, CurrencyNormalizer().normalize)

        assert balance.info is self.RESPONSE

    def test_currency_codes_normalized(self):
        """Venue codes are uppercased and mapped."""
        response = {"info": {"funds": {"free": {"xbt": "1"}, "freezed": {}}}}

        assert "BTC" in parse_balance(response, CurrencyNormalizer().normalize)
        assert "XBT" in parse_balance(response, CurrencyNormalizer({}).normalize)

    def test_missing_funds_raises(self):
        """A payload without funds is rejected."""
        with pytest.raises(DataContractError):
            parse_balance({"info": {}}, CurrencyNormalizer().normalize)
