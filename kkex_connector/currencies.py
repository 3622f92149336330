"""
Currency code normalization.

Maps venue currency codes onto the codes used across venues.
"""

from typing import Mapping, Optional

from .config import DEFAULT_COMMON_CURRENCIES


class CurrencyNormalizer:
    """Pure code mapping, no I/O."""

    def __init__(self, mapping: Optional[Mapping[str, str]] = None) -> None:
        source = DEFAULT_COMMON_CURRENCIES if mapping is None else mapping
        self._mapping = {k.upper(): v.upper() for k, v in source.items()}

    def normalize(self, code: str) -> str:
        """Uppercase the code and apply the common-currency mapping."""
        upper = code.upper()
        return self._mapping.get(upper, upper)

    def __call__(self, code: str) -> str:
        return self.normalize(code)
