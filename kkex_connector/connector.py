"""
KKEX Connector - Request Orchestrator.

============================================================
PURPOSE
============================================================
Venue-agnostic operations over the KKEX HTTP API.

FLOW:
    operation -> signer (private only) -> transport -> raw JSON
              -> normalizer (+ MarketCatalog) -> canonical record

RULES:
- Missing required arguments fail before any network call
- Private calls without credentials fail before signing
- The market catalog is built once and shared read-only
- Transport errors propagate unchanged

============================================================
"""

import asyncio
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping, Optional, Protocol, Sequence, Union

from .catalog import DEFAULT_TRADING_FEE, MarketCatalog, build_market_catalog
from .config import ConnectorConfig, get_config
from .currencies import CurrencyNormalizer
from .exceptions import DataContractError, InvalidOrderError, NotFoundError, ValidationError
from .formatting import amount_to_precision, milliseconds, price_to_precision
from .market_data import (
    DEFAULT_OHLCV_LIMIT,
    DEFAULT_OHLCV_LOOKBACK_MS,
    TIMEFRAMES,
    decode_ticker_listing,
    kline_type,
    parse_ohlcvs,
    parse_order_book,
    parse_ticker_response,
    parse_tickers_response,
    parse_trades,
)
from .models import (
    Balance,
    Candle,
    Market,
    Order,
    OrderBook,
    OrderSide,
    OrderStatus,
    OrderType,
    Ticker,
    Timeframe,
    Trade,
    VenueMetadata,
)
from .orders import parse_balance, parse_order, parse_order_id, parse_orders
from .signing import NonceGenerator, RequestSigner, SignedRequest
from .transport import HttpTransport


logger = logging.getLogger(__name__)


Number = Union[Decimal, int, float, str]

DEFAULT_ORDER_HISTORY_LIMIT = 20

# order_history status filter values
_HISTORY_OPEN = 0
_HISTORY_CLOSED = 1


class Transport(Protocol):
    async def request(
        self,
        url: str,
        method: str = "GET",
        headers: Optional[dict[str, str]] = None,
        body: Optional[str] = None,
    ) -> Any:
        ...


class KKEXConnector:
    """
    KKEX spot connector.

    Public endpoints (v1): products, tickers, ticker, depth, trades, kline
    Private endpoints (v2): trade, cancel_order, order_history, userinfo, order_info
    """

    name = "kkex"

    def __init__(
        self,
        config: Optional[ConnectorConfig] = None,
        transport: Optional[Transport] = None,
        nonce_generator: Optional[NonceGenerator] = None,
        clock: Callable[[], int] = milliseconds,
    ) -> None:
        self._config = config or get_config()
        self._transport = transport or HttpTransport(
            timeout=self._config.timeout_seconds,
            user_agent=self._config.user_agent,
        )
        self._owns_transport = transport is None
        self._signer = RequestSigner(
            api_key=self._config.api_key,
            secret=self._config.api_secret,
            nonce_generator=nonce_generator or NonceGenerator(clock),
        )
        self._currencies = CurrencyNormalizer(self._config.common_currencies)
        self._clock = clock

        self._catalog: Optional[MarketCatalog] = None
        self._catalog_lock = asyncio.Lock()

    @property
    def config(self) -> ConnectorConfig:
        return self._config

    @property
    def catalog(self) -> Optional[MarketCatalog]:
        """The loaded catalog, or None before the first load."""
        return self._catalog

    def metadata(self) -> VenueMetadata:
        """Return venue metadata."""
        return VenueMetadata(
            name=self.name,
            display_name="KKEX",
            version="v1",
            countries=("CN", "US", "JP"),
            public_url=self._config.public_url,
            private_url=self._config.private_url,
            www_url="https://kkex.com",
            documentation_url="https://kkex.com/api_wiki/cn/",
            timeframes=tuple(t.value for t in TIMEFRAMES),
            taker_fee=DEFAULT_TRADING_FEE,
            maker_fee=DEFAULT_TRADING_FEE,
        )

    # --------------------------------------------------------
    # REQUESTS
    # --------------------------------------------------------

    async def _send(self, signed: SignedRequest) -> Any:
        return await self._transport.request(
            signed.url,
            signed.method,
            signed.headers,
            signed.body,
        )

    async def _public(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        signed = self._signer.sign_public(self._config.public_url, path, params)
        return await self._send(signed)

    async def _private(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        signed = self._signer.sign_private(self._config.private_url, path, params)
        return await self._send(signed)

    @staticmethod
    def _extend(request: dict[str, Any], params: Optional[Mapping[str, Any]]) -> dict[str, Any]:
        if params:
            request.update(params)
        return request

    @staticmethod
    def _require_symbol(symbol: Optional[str], operation: str) -> str:
        if not symbol:
            raise ValidationError(f"{operation} requires a symbol argument", argument="symbol")
        return symbol

    @staticmethod
    def _order_number(value: Any, argument: str) -> Decimal:
        """Coerce an order amount or price; it must be a finite, positive number."""
        if isinstance(value, bool):
            raise InvalidOrderError(f"Order {argument} must be a number, got {value!r}", argument=argument)
        try:
            number = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as e:
            raise InvalidOrderError(
                f"Order {argument} must be a number, got {value!r}",
                argument=argument,
                context={"error": str(e)},
            )
        if not number.is_finite() or number <= 0:
            raise InvalidOrderError(f"Order {argument} must be positive and finite, got {value!r}", argument=argument)
        return number

    @staticmethod
    def _field(response: Any, key: str) -> Any:
        if not isinstance(response, Mapping) or key not in response:
            raise DataContractError(f"Response has no {key!r} field", field_name=key, raw_data=response)
        return response[key]

    # --------------------------------------------------------
    # MARKETS
    # --------------------------------------------------------

    async def _build_catalog(self, params: Optional[Mapping[str, Any]] = None) -> MarketCatalog:
        tickers_response, products_response = await asyncio.gather(
            self._public("tickers", params),
            self._public("products", params),
        )
        listings = decode_ticker_listing(self._field(tickers_response, "tickers") or [])
        products = self._field(products_response, "products") or []
        return build_market_catalog(listings, products, self._currencies.normalize)

    async def fetch_markets(self, params: Optional[Mapping[str, Any]] = None) -> list[Market]:
        """Fetch and join both listings. Does not touch the cached catalog."""
        catalog = await self._build_catalog(params)
        return list(catalog.markets)

    async def load_markets(self, reload: bool = False) -> MarketCatalog:
        """
        Build the catalog on first use and return it.

        Concurrent first callers wait on a single in-flight build.
        """
        if self._catalog is not None and not reload:
            return self._catalog
        async with self._catalog_lock:
            if self._catalog is not None and not reload:
                return self._catalog
            catalog = await self._build_catalog()
            self._catalog = catalog
            logger.info(f"[kkex] Loaded {len(catalog)} markets ({len(catalog.by_symbol)} with symbols)")
            return catalog

    async def market(self, symbol: str) -> Market:
        catalog = await self.load_markets()
        return catalog.market(symbol)

    # --------------------------------------------------------
    # MARKET DATA
    # --------------------------------------------------------

    async def fetch_ticker(self, symbol: str, params: Optional[Mapping[str, Any]] = None) -> Ticker:
        self._require_symbol(symbol, "fetch_ticker")
        market = await self.market(symbol)
        response = await self._public("ticker", self._extend({"symbol": market.id}, params))
        return parse_ticker_response(response, market)

    async def fetch_tickers(
        self,
        symbols: Optional[Sequence[str]] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> dict[str, Ticker]:
        catalog = await self.load_markets()
        response = await self._public("tickers", params)
        return parse_tickers_response(response, catalog, symbols)

    async def fetch_order_book(
        self,
        symbol: str,
        limit: Optional[int] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> OrderBook:
        self._require_symbol(symbol, "fetch_order_book")
        market = await self.market(symbol)
        response = await self._public("depth", self._extend({"symbol": market.id, "size": limit}, params))
        return parse_order_book(response, market)

    async def fetch_trades(
        self,
        symbol: str,
        since: Optional[int] = None,
        limit: Optional[int] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> list[Trade]:
        self._require_symbol(symbol, "fetch_trades")
        market = await self.market(symbol)
        response = await self._public("trades", self._extend({"symbol": market.id}, params))
        return parse_trades(response or [], market, since, limit)

    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: Union[str, Timeframe] = Timeframe.M1,
        since: Optional[int] = None,
        limit: Optional[int] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> list[Candle]:
        """Defaults: the last 60 seconds, at most 5 rows."""
        self._require_symbol(symbol, "fetch_ohlcv")
        venue_type = kline_type(timeframe)
        market = await self.market(symbol)
        if not limit:
            limit = DEFAULT_OHLCV_LIMIT
        if not since:
            since = self._clock() - DEFAULT_OHLCV_LOOKBACK_MS
        response = await self._public("kline", self._extend({
            "symbol": market.id,
            "type": venue_type,
            "since": since,
            "size": limit,
        }, params))
        return parse_ohlcvs(response or [], since, limit)

    # --------------------------------------------------------
    # ACCOUNT
    # --------------------------------------------------------

    async def fetch_balance(self, params: Optional[Mapping[str, Any]] = None) -> Balance:
        self._signer.check_required_credentials()
        response = await self._private("userinfo", params)
        return parse_balance(response, self._currencies.normalize)

    async def fetch_order(
        self,
        order_id: Union[int, str],
        symbol: Optional[str] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Order:
        self._require_symbol(symbol, "fetch_order")
        self._signer.check_required_credentials()
        market = await self.market(symbol)
        response = await self._private("order_info", self._extend({
            "order_id": order_id,
            "symbol": market.id,
        }, params))
        if not isinstance(response, Mapping) or not response.get("result"):
            raise NotFoundError(
                f"Order {order_id} not found",
                entity_id=str(order_id),
                symbol=symbol,
                context={"response": response},
            )
        return parse_order(self._field(response, "order"), market)

    async def create_order(
        self,
        symbol: str,
        type: Union[str, OrderType],
        side: Union[str, OrderSide],
        amount: Number,
        price: Optional[Number] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Order:
        """
        Place an order.

        Market buys are sent as the quote amount to spend. See
        ConnectorConfig.create_market_buy_order_requires_price.
        """
        self._require_symbol(symbol, "create_order")
        try:
            order_type = OrderType(type)
            order_side = OrderSide(side)
        except ValueError as e:
            raise InvalidOrderError(f"Unsupported order type/side: {type}/{side}", context={"error": str(e)})
        if order_type == OrderType.LIMIT and price is None:
            raise InvalidOrderError("Limit orders require a price", argument="price")
        amount_value = self._order_number(amount, "amount")
        price_value = self._order_number(price, "price") if price is not None else None
        self._signer.check_required_credentials()

        market = await self.market(symbol)
        places = market.precision.amount
        request: dict[str, Any] = {"symbol": market.id}

        if order_type == OrderType.MARKET:
            if order_side == OrderSide.BUY:
                quote_amount = amount_value
                if self._config.create_market_buy_order_requires_price:
                    if price_value is None:
                        raise InvalidOrderError(
                            "Market buy orders require a price to compute the cost (amount * price). "
                            "Pass a price, or set create_market_buy_order_requires_price = False "
                            "and pass the cost as the amount.",
                            argument="price",
                        )
                    quote_amount = amount_value * price_value
                request["price"] = amount_to_precision(quote_amount, places)
            else:
                request["amount"] = amount_to_precision(amount_value, places)
            request["type"] = f"{order_side.value}_market"
        else:
            request["amount"] = amount_to_precision(amount_value, places)
            request["price"] = price_to_precision(price_value, market.precision.price)
            request["type"] = order_side.value

        response = await self._private("trade", self._extend(request, params))
        order = Order(
            id=parse_order_id(response),
            symbol=market.symbol,
            side=order_side.value,
            type=order_type.value,
            status=OrderStatus.OPEN,
            price=price_value,
            average=None,
            amount=amount_value,
            filled=None,
            remaining=None,
            cost=None,
            info=response,
        )
        logger.info(f"[kkex] Created {order_type.value} {order_side.value} order {order.id} on {market.symbol}")
        return order

    async def cancel_order(
        self,
        order_id: Union[int, str],
        symbol: Optional[str] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Mapping[str, Any]:
        """Cancel an order. Returns the raw venue acknowledgement."""
        self._require_symbol(symbol, "cancel_order")
        self._signer.check_required_credentials()
        market = await self.market(symbol)
        response = await self._private("cancel_order", self._extend({
            "order_id": order_id,
            "symbol": market.id,
        }, params))
        logger.info(f"[kkex] Cancel requested for order {order_id} on {market.symbol}")
        return response

    async def _fetch_order_history(
        self,
        status: int,
        symbol: Optional[str],
        since: Optional[int],
        limit: Optional[int],
        params: Optional[Mapping[str, Any]],
        operation: str,
    ) -> list[Order]:
        self._require_symbol(symbol, operation)
        self._signer.check_required_credentials()
        market = await self.market(symbol)
        if limit is None:
            limit = DEFAULT_ORDER_HISTORY_LIMIT
        response = await self._private("order_history", self._extend({
            "symbol": market.id,
            "status": status,
            "page_length": limit,
        }, params))
        return parse_orders(self._field(response, "orders"), market, since, limit)

    async def fetch_open_orders(
        self,
        symbol: Optional[str] = None,
        since: Optional[int] = None,
        limit: Optional[int] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> list[Order]:
        return await self._fetch_order_history(_HISTORY_OPEN, symbol, since, limit, params, "fetch_open_orders")

    async def fetch_closed_orders(
        self,
        symbol: Optional[str] = None,
        since: Optional[int] = None,
        limit: Optional[int] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> list[Order]:
        return await self._fetch_order_history(_HISTORY_CLOSED, symbol, since, limit, params, "fetch_closed_orders")

    # --------------------------------------------------------
    # LIFECYCLE
    # --------------------------------------------------------

    async def close(self) -> None:
        """Close resources."""
        if self._owns_transport and isinstance(self._transport, HttpTransport):
            await self._transport.close()

    async def __aenter__(self) -> "KKEXConnector":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        markets = len(self._catalog) if self._catalog is not None else 0
        return f"<{self.__class__.__name__}(name={self.name}, markets={markets})>"
