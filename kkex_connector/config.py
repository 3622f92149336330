"""
KKEX Connector - Configuration.

============================================================
PURPOSE
============================================================
All configuration for the connector.

Configuration can be loaded from:
- Default values
- Environment variables (a .env file is honoured)
- YAML config file

============================================================
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigurationError


logger = logging.getLogger(__name__)


DEFAULT_COMMON_CURRENCIES: Dict[str, str] = {
    "XBT": "BTC",
    "BCC": "BCH",
    "DRK": "DASH",
    "BCHABC": "BCH",
    "BCHSV": "BSV",
}

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _parse_bool(value: Union[str, bool]) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


@dataclass
class ConnectorConfig:
    """
    Connector configuration.

    create_market_buy_order_requires_price:
        When True, a market buy needs a price and the connector sends
        amount * price as the quote amount to spend. When False, the
        amount argument is sent as that quote amount unchanged.
    """

    api_key: str = ""
    """API key for private endpoints."""

    api_secret: str = ""
    """Shared secret for request signing."""

    public_url: str = "https://kkex.com/api/v1"
    """Base URL for public endpoints."""

    private_url: str = "https://kkex.com/api/v2"
    """Base URL for private endpoints."""

    timeout_seconds: float = 30.0
    """Total HTTP timeout."""

    create_market_buy_order_requires_price: bool = True
    """See class docstring."""

    common_currencies: Dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_COMMON_CURRENCIES)
    )
    """Venue currency code -> canonical code."""

    user_agent: str = "kkex-connector/1.0"

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key) and bool(self.api_secret)

    @classmethod
    def from_env(cls, dotenv_path: Optional[Path] = None) -> "ConnectorConfig":
        """
        Load configuration from environment variables.

        Environment variables:
        - KKEX_API_KEY
        - KKEX_API_SECRET
        - KKEX_PUBLIC_URL
        - KKEX_PRIVATE_URL
        - KKEX_TIMEOUT_SECONDS
        - KKEX_MARKET_BUY_REQUIRES_PRICE
        """
        load_dotenv(dotenv_path)
        config = cls()

        config.api_key = os.getenv("KKEX_API_KEY", "")
        config.api_secret = os.getenv("KKEX_API_SECRET", "")
        if os.getenv("KKEX_PUBLIC_URL"):
            config.public_url = os.getenv("KKEX_PUBLIC_URL")
        if os.getenv("KKEX_PRIVATE_URL"):
            config.private_url = os.getenv("KKEX_PRIVATE_URL")
        if os.getenv("KKEX_TIMEOUT_SECONDS"):
            try:
                config.timeout_seconds = float(os.getenv("KKEX_TIMEOUT_SECONDS"))
            except ValueError as e:
                raise ConfigurationError(
                    "KKEX_TIMEOUT_SECONDS must be a number",
                    config_key="KKEX_TIMEOUT_SECONDS",
                    original_error=e,
                )
        if os.getenv("KKEX_MARKET_BUY_REQUIRES_PRICE"):
            config.create_market_buy_order_requires_price = _parse_bool(
                os.getenv("KKEX_MARKET_BUY_REQUIRES_PRICE")
            )

        return config

    @classmethod
    def from_yaml(cls, path: Path) -> "ConnectorConfig":
        """Load configuration from YAML file."""
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load YAML config from {path}", original_error=e)

        if not isinstance(data, dict):
            raise ConfigurationError(f"YAML config {path} must be a mapping")

        config = cls()
        if "api_key" in data:
            config.api_key = str(data["api_key"])
        if "api_secret" in data:
            config.api_secret = str(data["api_secret"])
        if "public_url" in data:
            config.public_url = data["public_url"]
        if "private_url" in data:
            config.private_url = data["private_url"]
        if "timeout_seconds" in data:
            config.timeout_seconds = float(data["timeout_seconds"])
        if "create_market_buy_order_requires_price" in data:
            config.create_market_buy_order_requires_price = _parse_bool(
                data["create_market_buy_order_requires_price"]
            )
        if "common_currencies" in data:
            config.common_currencies.update(data["common_currencies"] or {})

        logger.info(f"Loaded connector config from {path}")
        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary. Credentials are reported as presence only."""
        return {
            "has_credentials": self.has_credentials,
            "public_url": self.public_url,
            "private_url": self.private_url,
            "timeout_seconds": self.timeout_seconds,
            "create_market_buy_order_requires_price": self.create_market_buy_order_requires_price,
            "common_currencies": dict(self.common_currencies),
        }


# =============================================================
# GLOBAL CONFIG SINGLETON
# =============================================================


_default_config: Optional[ConnectorConfig] = None


def get_config() -> ConnectorConfig:
    """Get the global connector configuration."""
    global _default_config
    if _default_config is None:
        _default_config = ConnectorConfig.from_env()
    return _default_config


def set_config(config: Optional[ConnectorConfig]) -> None:
    """Set the global connector configuration."""
    global _default_config
    _default_config = config
