"""
Market Catalog Tests.

============================================================
PURPOSE
============================================================
Tests for joining the ticker listing with product metadata.

TEST CATEGORIES:
- Price scale decimals
- Product join and limits
- Catalog indices and lookups

============================================================
"""

from decimal import Decimal
from types import MappingProxyType

import pytest

from kkex_connector import (
    BadSymbolError,
    CurrencyNormalizer,
    DataContractError,
    MarketCatalog,
    build_market_catalog,
    price_scale_decimals,
)
from kkex_connector.catalog import find_product
from kkex_connector.market_data import decode_ticker_listing

from conftest import PRODUCTS_RESPONSE, TICKERS_RESPONSE


SCENARIO_PRODUCT = {
    "mark_asset": "ENU",
    "base_asset": "BTC",
    "price_scale": "0.00000001",
    "min_bid_size": 1,
    "max_bid_size": 1000,
    "min_ask_size": 2,
    "max_ask_size": 900,
    "min_price": 0.1,
    "max_price": 10,
    "min_bid_amount": 5,
    "max_bid_amount": 500,
}


def build(listing_entries, products, normalizer=None) -> MarketCatalog:
    return build_market_catalog(
        decode_ticker_listing(listing_entries),
        products,
        (normalizer or CurrencyNormalizer()).normalize,
    )


# ============================================================
# PRICE SCALE
# ============================================================

class TestPriceScaleDecimals:
    """Tests for price_scale_decimals."""

    @pytest.mark.parametrize("scale, expected", [
        ("1", 0),
        ("10", 1),
        ("100", 2),
        ("10000", 4),
        ("100000000", 8),
    ])
    def test_integer_factor_is_length_minus_one(self, scale, expected):
        """Power-of-ten factors yield len(s) - 1."""
        assert price_scale_decimals(scale) == expected
        assert price_scale_decimals(scale) == len(scale) - 1

    def test_numeric_factor(self):
        """Numbers are rendered as text first."""
        assert price_scale_decimals(100000000) == 8

    @pytest.mark.parametrize("scale, expected", [
        ("0.01", 2),
        ("0.00000001", 8),
        ("0.1", 1),
    ])
    def test_fractional_factor(self, scale, expected):
        """Fractional renderings count their fractional digits."""
        assert price_scale_decimals(scale) == expected

    @pytest.mark.parametrize("scale, expected", [
        (100000000.0, 8),
        ("10000.0", 4),
        (1e20, 20),
        ("1.0", 0),
    ])
    def test_float_rendering_of_integer_factor(self, scale, expected):
        """A float-typed integer factor is still counted as len - 1."""
        assert price_scale_decimals(scale) == expected

    def test_empty_scale_raises(self):
        """An empty scale is a data contract violation."""
        with pytest.raises(DataContractError):
            price_scale_decimals("")


# ============================================================
# JOIN
# ============================================================

class TestMarketJoin:
    """Tests for building markets from the two listings."""

    def test_scenario_market(self):
        """ENUBTC joined with its product yields the documented market."""
        catalog = build([{"ENUBTC": {}}], [SCENARIO_PRODUCT])
        market = catalog.market("ENU/BTC")

        assert market.id == "ENUBTC"
        assert market.symbol == "ENU/BTC"
        assert market.base == "ENU"
        assert market.quote == "BTC"
        assert market.base_id == "ENU"
        assert market.quote_id == "BTC"
        assert market.precision.price == 8
        assert market.precision.amount == 8
        assert market.limits.amount.min == Decimal("2")
        assert market.limits.amount.max == Decimal("900")
        assert market.limits.price.min == Decimal("0.1")
        assert market.limits.price.max == Decimal("10")
        assert market.limits.cost.min == Decimal("5")
        assert market.limits.cost.max == Decimal("500")
        assert market.active is True

    def test_unmatched_pair_has_empty_fields(self):
        """A listed pair with no product keeps empty codes and no limits."""
        catalog = build([{"NEWBTC": {"last": "1"}}], [SCENARIO_PRODUCT])
        market = catalog.market_by_id("NEWBTC")

        assert market is not None
        assert market.symbol == ""
        assert market.base == ""
        assert market.quote == ""
        assert market.precision.is_empty()
        assert market.limits.is_empty()
        assert "" not in catalog.by_symbol

    def test_first_matching_product_wins(self):
        """Duplicate products resolve to the first in listing order."""
        second = dict(SCENARIO_PRODUCT, price_scale="100")
        catalog = build([{"ENUBTC": {}}], [SCENARIO_PRODUCT, second])

        assert catalog.market("ENU/BTC").precision.price == 8

    def test_codes_are_uppercased_and_normalized(self):
        """Lowercase venue codes are uppercased, then mapped."""
        product = dict(SCENARIO_PRODUCT, mark_asset="xbt", base_asset="usdt")
        catalog = build([{"xbtusdt": {}}], [product])

        market = catalog.market_by_id("xbtusdt")
        assert market.symbol == "BTC/USDT"
        assert market.base_id == "xbt"
        assert market.quote_id == "usdt"

    def test_find_product_concatenates_mark_then_base(self):
        """The join key is mark_asset followed by base_asset."""
        assert find_product("ENUBTC", [SCENARIO_PRODUCT]) is SCENARIO_PRODUCT
        assert find_product("BTCENU", [SCENARIO_PRODUCT]) is None

    def test_missing_side_limit_uses_other_side(self):
        """Only defined bounds take part in the intersection."""
        product = dict(SCENARIO_PRODUCT)
        del product["min_ask_size"]
        catalog = build([{"ENUBTC": {}}], [product])

        assert catalog.market("ENU/BTC").limits.amount.min == Decimal("1")


# ============================================================
# CATALOG
# ============================================================

class TestMarketCatalog:
    """Tests for MarketCatalog indices."""

    @pytest.fixture
    def catalog(self) -> MarketCatalog:
        return build(TICKERS_RESPONSE["tickers"], PRODUCTS_RESPONSE["products"])

    def test_every_listed_pair_is_a_market(self, catalog):
        """One market per listed pair, matched or not."""
        assert [m.id for m in catalog.markets] == ["ENUBTC", "ENUEOS", "NEWBTC"]
        assert len(catalog) == 3

    def test_symbols_only_for_matched_pairs(self, catalog):
        """Only matched pairs are reachable by symbol."""
        assert catalog.symbols == ["ENU/BTC", "ENU/EOS"]
        assert "ENU/EOS" in catalog

    def test_indices_are_read_only(self, catalog):
        """Indices are mapping proxies."""
        assert isinstance(catalog.by_symbol, MappingProxyType)
        with pytest.raises(TypeError):
            catalog.by_id["X"] = None

    def test_unknown_symbol_raises(self, catalog):
        """Unknown symbols raise BadSymbolError."""
        with pytest.raises(BadSymbolError):
            catalog.market("DOGE/BTC")

    def test_market_id(self, catalog):
        """Symbol resolves to the venue id."""
        assert catalog.market_id("ENU/EOS") == "ENUEOS"
        assert catalog.market("ENU/EOS").precision.amount == 4
