"""
KKEX Connector - Request Signing.

============================================================
PURPOSE
============================================================
Builds URL, headers and body for public and private requests.

PRIVATE REQUEST SIGNATURE:
1. nonce = current time in ms, strictly increasing per API key
2. payload = {nonce, api_key, **params}
3. payload keys sorted lexicographically
4. secret_key appended as the last field
5. payload URL-encoded
6. sign = MD5(encoded).hexdigest().upper()
7. body = urlencode({api_key, sign, nonce, **params})

Caller params may not set api_key, nonce, sign or secret_key, so the
signed payload and the sent body always carry the same values.

The signature depends only on (params, nonce, api_key, secret) and
is reproducible byte for byte.

============================================================
"""

import hashlib
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import urlencode

from .exceptions import AuthenticationError, ValidationError
from .formatting import milliseconds
from .logging_utils import mask_params


logger = logging.getLogger(__name__)


JSON_HEADERS = {"Content-Type": "application/json"}
FORM_HEADERS = {"Content-Type": "application/x-www-form-urlencoded"}

# Fields the signer generates; callers may not supply them
RESERVED_PARAMS = frozenset({"api_key", "nonce", "sign", "secret_key"})


def _encode_value(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


def encode_params(params: Mapping[str, Any]) -> str:
    """URL-encode params in their given order, dropping None values."""
    return urlencode([
        (key, _encode_value(value))
        for key, value in params.items()
        if value is not None
    ])


@dataclass(frozen=True)
class SignedRequest:
    """Everything the transport needs to issue one request."""
    url: str
    method: str
    headers: Dict[str, str]
    body: Optional[str] = None


class NonceGenerator:
    """
    Millisecond nonces, strictly increasing per credential.

    Two calls within the same millisecond get consecutive values, so a
    nonce is never handed out twice for the same API key.
    """

    def __init__(self, clock: Callable[[], int] = milliseconds) -> None:
        self._clock = clock
        self._last: Dict[str, int] = {}
        self._lock = threading.Lock()

    def next(self, credential: str) -> int:
        with self._lock:
            candidate = self._clock()
            last = self._last.get(credential)
            if last is not None and candidate <= last:
                candidate = last + 1
            self._last[credential] = candidate
            return candidate

    def last(self, credential: str) -> Optional[int]:
        return self._last.get(credential)


def check_reserved_params(params: Mapping[str, Any]) -> None:
    """Reject caller params that would collide with signer-generated fields."""
    clashing = sorted(RESERVED_PARAMS.intersection(params))
    if clashing:
        raise ValidationError(
            f"Request params may not set signer fields: {', '.join(clashing)}",
            argument="params",
            context={"fields": clashing},
        )


def compute_signature(
    params: Mapping[str, Any],
    nonce: int,
    api_key: str,
    secret: str,
) -> str:
    """Uppercase MD5 hex digest over the sorted, secret-appended payload."""
    check_reserved_params(params)
    payload = dict(params)
    payload["nonce"] = nonce
    payload["api_key"] = api_key
    ordered = {key: payload[key] for key in sorted(payload)}
    ordered["secret_key"] = secret
    encoded = encode_params(ordered)
    return hashlib.md5(encoded.encode("utf-8")).hexdigest().upper()


class RequestSigner:
    """Signs requests for one credential pair."""

    def __init__(
        self,
        api_key: str = "",
        secret: str = "",
        nonce_generator: Optional[NonceGenerator] = None,
    ) -> None:
        self._api_key = api_key
        self._secret = secret
        self._nonces = nonce_generator or NonceGenerator()

    @property
    def api_key(self) -> str:
        return self._api_key

    def check_required_credentials(self) -> None:
        missing = []
        if not self._api_key:
            missing.append("api_key")
        if not self._secret:
            missing.append("secret")
        if missing:
            raise AuthenticationError(
                f"Private request requires credentials, missing: {', '.join(missing)}",
                missing=missing,
            )

    def sign_public(
        self,
        base_url: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        method: str = "GET",
    ) -> SignedRequest:
        url = f"{base_url}/{path}"
        query = encode_params(params or {})
        if query:
            url = f"{url}?{query}"
        return SignedRequest(url=url, method=method, headers=dict(JSON_HEADERS))

    def sign_private(
        self,
        base_url: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        method: str = "POST",
    ) -> SignedRequest:
        self.check_required_credentials()
        params = {k: v for k, v in (params or {}).items() if v is not None}
        check_reserved_params(params)

        nonce = self._nonces.next(self._api_key)
        signature = compute_signature(params, nonce, self._api_key, self._secret)

        body_fields: Dict[str, Any] = {
            "api_key": self._api_key,
            "sign": signature,
            "nonce": nonce,
        }
        body_fields.update(params)
        body = encode_params(body_fields)

        logger.debug(f"[kkex] Signed {path} {mask_params(body_fields)}")
        return SignedRequest(
            url=f"{base_url}/{path}",
            method=method,
            headers=dict(FORM_HEADERS),
            body=body,
        )
