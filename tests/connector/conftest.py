"""
Shared fixtures for KKEX connector tests.
"""

from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs, urlsplit

import pytest

from kkex_connector import ConnectorConfig, KKEXConnector


FIXED_NOW_MS = 1540350657000


TICKERS_RESPONSE = {
    "date": 1540350657,
    "tickers": [
        {"ENUBTC": {
            "sell": "0.00000256",
            "buy": "0.00000253",
            "last": "0.00000253",
            "vol": "138686.828804",
            "high": "0.00000278",
            "low": "0.00000253",
            "open": "0.0000027",
        }},
        {"ENUEOS": {
            "sell": "0.00335",
            "buy": "0.002702",
            "last": "0.0034",
            "vol": "15084.9",
            "high": "0.0034",
            "low": "0.003189",
            "open": "0.003189",
        }},
        {"NEWBTC": {
            "sell": "1",
            "buy": "1",
            "last": "1",
            "vol": "0",
            "high": "1",
            "low": "1",
        }},
    ],
    "result": True,
}

PRODUCTS_RESPONSE = {
    "products": [
        {
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
        },
        {
            "mark_asset": "ENU",
            "base_asset": "EOS",
            "price_scale": "10000",
            "min_bid_size": "0.1",
            "max_bid_size": "100000",
            "min_ask_size": "0.1",
            "max_ask_size": "100000",
            "min_price": "0.0001",
            "max_price": "1000",
            "min_bid_amount": "0.01",
            "max_bid_amount": "10000",
        },
    ],
}


def make_transport(routes: dict[str, Any]) -> MagicMock:
    """
    Fake transport routing on the last URL path segment.

    A route is either a payload or a callable(url, body) -> payload.
    Every call is recorded on transport.request.
    """
    async def request(url, method="GET", headers=None, body=None):
        path = urlsplit(url).path.rsplit("/", 1)[-1]
        route = routes[path]
        if isinstance(route, Exception):
            raise route
        return route(url, body) if callable(route) else route

    transport = MagicMock()
    transport.request = AsyncMock(side_effect=request)
    return transport


def calls_to(transport: MagicMock, path: str) -> list:
    return [
        c for c in transport.request.call_args_list
        if urlsplit(c.args[0]).path.endswith(f"/{path}")
    ]


def query_of(call) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(urlsplit(call.args[0]).query).items()}


def body_of(call) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(call.args[3]).items()}


@pytest.fixture
def config() -> ConnectorConfig:
    return ConnectorConfig(api_key="test_key", api_secret="test_secret")


@pytest.fixture
def anonymous_config() -> ConnectorConfig:
    return ConnectorConfig()


@pytest.fixture
def market_routes() -> dict[str, Any]:
    return {
        "tickers": TICKERS_RESPONSE,
        "products": PRODUCTS_RESPONSE,
    }


@pytest.fixture
def make_connector(config) -> Callable[..., KKEXConnector]:
    def factory(routes: dict[str, Any], connector_config: ConnectorConfig = None) -> KKEXConnector:
        return KKEXConnector(
            config=connector_config or config,
            transport=make_transport(routes),
            clock=lambda: FIXED_NOW_MS,
        )
    return factory
