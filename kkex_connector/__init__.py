"""
KKEX Connector - Venue-agnostic access to the KKEX spot exchange.

Features:
- Market catalog joined from the ticker and product listings
- Canonical tickers, trades, candles, order books, orders and balances
- MD5-signed private requests with strictly increasing nonces
- Typed errors, no silent zero defaults for unknown values

Quick Start:
    from kkex_connector import ConnectorConfig, KKEXConnector

    async def main():
        config = ConnectorConfig.from_env()
        async with KKEXConnector(config) as kkex:
            await kkex.load_markets()
            ticker = await kkex.fetch_ticker("ENU/BTC")
            print(f"{ticker.symbol}: bid={ticker.bid} ask={ticker.ask} last={ticker.last}")

            order = await kkex.create_order("ENU/BTC", "limit", "buy", "100", "0.00000250")
            print(f"order {order.id} is {order.status.value}")
"""

from kkex_connector.catalog import MarketCatalog, build_market_catalog, price_scale_decimals
from kkex_connector.config import ConnectorConfig, get_config, set_config
from kkex_connector.connector import KKEXConnector
from kkex_connector.currencies import CurrencyNormalizer
from kkex_connector.exceptions import (
    AuthenticationError,
    BadSymbolError,
    ConfigurationError,
    ConnectorError,
    DataContractError,
    InvalidOrderError,
    NotFoundError,
    RateLimitError,
    TransportError,
    ValidationError,
)
from kkex_connector.models import (
    Balance,
    BalanceEntry,
    Candle,
    Market,
    MarketLimits,
    MarketPrecision,
    MinMax,
    Order,
    OrderBook,
    OrderSide,
    OrderStatus,
    OrderType,
    Ticker,
    TickerListing,
    Timeframe,
    Trade,
    VenueMetadata,
)
from kkex_connector.orders import parse_order, parse_order_status
from kkex_connector.signing import NonceGenerator, RequestSigner, SignedRequest, compute_signature
from kkex_connector.transport import HttpTransport


__version__ = "1.0.0"

__all__ = [
    # Connector
    "KKEXConnector",
    "HttpTransport",

    # Config
    "ConnectorConfig",
    "get_config",
    "set_config",

    # Catalog
    "MarketCatalog",
    "build_market_catalog",
    "price_scale_decimals",
    "CurrencyNormalizer",

    # Models
    "Market",
    "MarketPrecision",
    "MarketLimits",
    "MinMax",
    "TickerListing",
    "Ticker",
    "Trade",
    "Candle",
    "OrderBook",
    "Order",
    "OrderStatus",
    "OrderSide",
    "OrderType",
    "Timeframe",
    "Balance",
    "BalanceEntry",
    "VenueMetadata",

    # Normalizers
    "parse_order",
    "parse_order_status",

    # Signing
    "NonceGenerator",
    "RequestSigner",
    "SignedRequest",
    "compute_signature",

    # Exceptions
    "ConnectorError",
    "ValidationError",
    "BadSymbolError",
    "InvalidOrderError",
    "AuthenticationError",
    "NotFoundError",
    "DataContractError",
    "TransportError",
    "RateLimitError",
    "ConfigurationError",
]
