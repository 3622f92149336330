"""
Connector Exceptions - Typed error taxonomy for the KKEX connector.

Every failure surfaces to the caller of the triggering operation.
The only tolerated condition (unknown ticker ids in bulk listings)
is handled in the normalizer and never raised.
"""

from datetime import datetime
from typing import Any, Optional


class ConnectorError(Exception):
    """Base exception for all connector errors."""

    def __init__(
        self,
        message: str,
        venue: Optional[str] = "kkex",
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.venue = venue
        self.original_error = original_error
        self.context = context or {}
        self.timestamp = datetime.utcnow()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "venue": self.venue,
            "original_error": str(self.original_error) if self.original_error else None,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        parts = [f"{self.__class__.__name__}: {self.message}"]
        if self.venue:
            parts.append(f"[venue={self.venue}]")
        if self.original_error:
            parts.append(f"(caused by: {self.original_error})")
        return " ".join(parts)


class ValidationError(ConnectorError):
    """A required argument was omitted or invalid. Raised before any network call."""

    def __init__(
        self,
        message: str,
        argument: Optional[str] = None,
        venue: Optional[str] = "kkex",
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, venue, context=context)
        self.argument = argument

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["argument"] = self.argument
        return data


class BadSymbolError(ValidationError):
    """Symbol is not present in the loaded market catalog."""


class InvalidOrderError(ValidationError):
    """Order parameters cannot be turned into a venue request."""


class AuthenticationError(ConnectorError):
    """Private call attempted without configured credentials."""

    def __init__(
        self,
        message: str,
        missing: Optional[list[str]] = None,
        venue: Optional[str] = "kkex",
    ) -> None:
        super().__init__(message, venue)
        self.missing = missing or []

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["missing"] = self.missing
        return data


class NotFoundError(ConnectorError):
    """A successful response reported that the requested entity does not exist."""

    def __init__(
        self,
        message: str,
        entity_id: Optional[str] = None,
        symbol: Optional[str] = None,
        venue: Optional[str] = "kkex",
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, venue, context=context)
        self.entity_id = entity_id
        self.symbol = symbol

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data.update({
            "entity_id": self.entity_id,
            "symbol": self.symbol,
        })
        return data


class DataContractError(ConnectorError):
    """Response is missing or malforms a field the normalizer cannot default."""

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        raw_data: Optional[Any] = None,
        venue: Optional[str] = "kkex",
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, venue, original_error)
        self.field_name = field_name
        self.raw_data = raw_data

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data.update({
            "raw_data": str(self.raw_data)[:500] if self.raw_data else None,  # Truncate
            "field_name": self.field_name,
        })
        return data


class TransportError(ConnectorError):
    """Network or HTTP failure. Propagated unchanged, never retried here."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        request_url: Optional[str] = None,
        venue: Optional[str] = "kkex",
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, venue, original_error)
        self.status_code = status_code
        self.response_body = response_body
        self.request_url = request_url

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data.update({
            "status_code": self.status_code,
            "response_body": self.response_body,
            "request_url": self.request_url,
        })
        return data

    def is_server_error(self) -> bool:
        """Check if error is server-side."""
        return self.status_code is not None and 500 <= self.status_code < 600

    def is_client_error(self) -> bool:
        """Check if error is client-side."""
        return self.status_code is not None and 400 <= self.status_code < 500


class RateLimitError(TransportError):
    """HTTP 429 from the venue."""

    def __init__(
        self,
        message: str,
        retry_after_seconds: Optional[int] = None,
        request_url: Optional[str] = None,
        venue: Optional[str] = "kkex",
    ) -> None:
        super().__init__(
            message,
            status_code=429,
            request_url=request_url,
            venue=venue,
        )
        self.retry_after_seconds = retry_after_seconds

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["retry_after_seconds"] = self.retry_after_seconds
        return data


class ConfigurationError(ConnectorError):
    """Connector configuration could not be loaded."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, original_error=original_error)
        self.config_key = config_key

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["config_key"] = self.config_key
        return data
