"""
KKEX Connector - Market Catalog.

============================================================
PURPOSE
============================================================
Joins the venue ticker listing (which pairs are listed) with the
product metadata listing (asset codes, price scale, limits) into
canonical Market records.

JOIN RULE:
- A product matches a pair when mark_asset + base_asset == pair id
- First matching product wins
- No match: empty codes, empty precision and limits

A built MarketCatalog is immutable; reloading builds a new one.

============================================================
"""

import logging
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from .exceptions import BadSymbolError, DataContractError
from .formatting import safe_decimal
from .models import Market, MarketLimits, MarketPrecision, MinMax, TickerListing


logger = logging.getLogger(__name__)


DEFAULT_TRADING_FEE = Decimal("0.002")


def price_scale_decimals(price_scale: Any) -> int:
    """
    Decimal places encoded by a product's price scale factor.

    The venue sends the factor as a power of ten ("100000000"), whose
    textual length minus one is the number of decimals. A factor
    rendered as a fraction ("0.00000001") is counted by its fractional
    digits instead. A float rendering of an integer factor
    ("100000000.0") counts as the integer factor.
    """
    text = str(price_scale).strip()
    if not text:
        raise DataContractError("Empty price_scale", field_name="price_scale", raw_data=price_scale)
    if "." in text or "e" in text.lower():
        try:
            value = Decimal(text)
        except InvalidOperation as e:
            raise DataContractError(
                f"Invalid price_scale: {price_scale!r}",
                field_name="price_scale",
                raw_data=price_scale,
                original_error=e,
            )
        if value >= 1 and value == value.to_integral_value():
            # 100000000.0 is still the integer factor 100000000
            return len(str(int(value))) - 1
        return max(-value.normalize().as_tuple().exponent, 0)
    return len(text) - 1


def _max_defined(*values: Optional[Decimal]) -> Optional[Decimal]:
    defined = [v for v in values if v is not None]
    return max(defined) if defined else None


def _min_defined(*values: Optional[Decimal]) -> Optional[Decimal]:
    defined = [v for v in values if v is not None]
    return min(defined) if defined else None


def find_product(pair_id: str, products: Sequence[Mapping[str, Any]]) -> Optional[Mapping[str, Any]]:
    """Linear scan, first product whose mark_asset + base_asset equals pair_id."""
    for product in products:
        if f"{product.get('mark_asset', '')}{product.get('base_asset', '')}" == pair_id:
            return product
    return None


def parse_limits(product: Mapping[str, Any]) -> MarketLimits:
    """
    Amount limits intersect the per-side bounds: the larger minimum and
    the smaller maximum. Cost limits come from the bid-amount bounds.
    """
    return MarketLimits(
        amount=MinMax(
            min=_max_defined(safe_decimal(product, "min_bid_size"), safe_decimal(product, "min_ask_size")),
            max=_min_defined(safe_decimal(product, "max_bid_size"), safe_decimal(product, "max_ask_size")),
        ),
        price=MinMax(
            min=safe_decimal(product, "min_price"),
            max=safe_decimal(product, "max_price"),
        ),
        cost=MinMax(
            min=safe_decimal(product, "min_bid_amount"),
            max=safe_decimal(product, "max_bid_amount"),
        ),
    )


def build_market(
    listing: TickerListing,
    products: Sequence[Mapping[str, Any]],
    normalize_currency: Callable[[str], str],
    fee: Decimal = DEFAULT_TRADING_FEE,
) -> Market:
    product = find_product(listing.pair_id, products)
    if product is None:
        logger.debug(f"[kkex] No product metadata for listed pair {listing.pair_id}")
        return Market(
            id=listing.pair_id,
            symbol="",
            base="",
            quote="",
            base_id="",
            quote_id="",
            active=False,
            taker=fee,
            maker=fee,
            info={"ticker": listing.payload, "product": None},
        )

    base_id = str(product["mark_asset"])
    quote_id = str(product["base_asset"])
    base = normalize_currency(base_id.upper())
    quote = normalize_currency(quote_id.upper())
    scale = price_scale_decimals(product.get("price_scale", ""))

    return Market(
        id=listing.pair_id,
        symbol=f"{base}/{quote}",
        base=base,
        quote=quote,
        base_id=base_id,
        quote_id=quote_id,
        precision=MarketPrecision(price=scale, amount=scale),
        limits=parse_limits(product),
        active=True,
        taker=fee,
        maker=fee,
        info={"ticker": listing.payload, "product": product},
    )


class MarketCatalog:
    """
    Read-only market lookup keyed by canonical symbol and venue id.

    Markets without product metadata have no symbol and are reachable
    by id only.
    """

    def __init__(self, markets: Iterable[Market]) -> None:
        self._markets = tuple(markets)
        by_symbol: dict[str, Market] = {}
        by_id: dict[str, Market] = {}
        for market in self._markets:
            by_id.setdefault(market.id, market)
            if market.symbol:
                if market.symbol in by_symbol:
                    logger.warning(
                        f"[kkex] Duplicate symbol {market.symbol} for ids "
                        f"{by_symbol[market.symbol].id} and {market.id}, keeping the first"
                    )
                    continue
                by_symbol[market.symbol] = market
        self._by_symbol = MappingProxyType(by_symbol)
        self._by_id = MappingProxyType(by_id)

    @property
    def markets(self) -> tuple[Market, ...]:
        return self._markets

    @property
    def by_symbol(self) -> Mapping[str, Market]:
        return self._by_symbol

    @property
    def by_id(self) -> Mapping[str, Market]:
        return self._by_id

    @property
    def symbols(self) -> list[str]:
        return sorted(self._by_symbol)

    def market(self, symbol: str) -> Market:
        """Resolve a canonical symbol, raising BadSymbolError if unknown."""
        market = self._by_symbol.get(symbol)
        if market is None:
            raise BadSymbolError(f"Unknown symbol {symbol!r}", argument="symbol")
        return market

    def market_by_id(self, market_id: str) -> Optional[Market]:
        return self._by_id.get(market_id)

    def market_id(self, symbol: str) -> str:
        return self.market(symbol).id

    def __len__(self) -> int:
        return len(self._markets)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._by_symbol

    def __repr__(self) -> str:
        return f"<MarketCatalog(markets={len(self._markets)}, symbols={len(self._by_symbol)})>"


def build_market_catalog(
    listings: Sequence[TickerListing],
    products: Sequence[Mapping[str, Any]],
    normalize_currency: Callable[[str], str],
    fee: Decimal = DEFAULT_TRADING_FEE,
) -> MarketCatalog:
    """Build one Market per listed pair and index them."""
    markets = [build_market(listing, products, normalize_currency, fee) for listing in listings]
    unmatched = sum(1 for m in markets if not m.symbol)
    if unmatched:
        logger.info(f"[kkex] {unmatched} listed pairs have no product metadata")
    return MarketCatalog(markets)
