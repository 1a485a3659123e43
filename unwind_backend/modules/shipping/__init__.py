"""
Shipping Module

Domain pieces for Australian freight quotes:
- AddressValidator (validation)
- RequestBuilder (request_builder)
- FallbackEstimator (fallback)
- BigPost CarrierClient (carriers.bigpost)
"""
from unwind_backend.modules.shipping.fallback import FallbackEstimator
from unwind_backend.modules.shipping.types import (
    Address,
    Dimensions,
    NormalizedAddress,
    PackageItem,
    Quote,
    QuoteResult,
    QuoteSource,
    StateCode,
)
from unwind_backend.modules.shipping.validation import validate_address

__all__ = [
    "Address",
    "Dimensions",
    "FallbackEstimator",
    "NormalizedAddress",
    "PackageItem",
    "Quote",
    "QuoteResult",
    "QuoteSource",
    "StateCode",
    "validate_address",
]
