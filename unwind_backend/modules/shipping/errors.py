"""
Shipping Errors

Three families:
- Field errors: raised by the validators, collected per field, shown inline
- Carrier errors: raised by the BigPost client, classified by HTTP status
- Quote errors: the only failures QuoteService lets reach its callers
"""
from typing import Any, Dict, List, Optional


class ShippingError(Exception):
    """Base exception for shipping errors."""

    def __init__(self, message: str, code: str = "SHIPPING_ERROR", details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)


# ==================== Field validation ====================


class FieldError(ShippingError):
    """A single field failed validation."""

    code = "INVALID_FIELD"

    def __init__(self, field: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.field = field
        super().__init__(message, code=type(self).code, details=details)


class FieldRequired(FieldError):
    code = "FIELD_REQUIRED"


class FieldTooLong(FieldError):
    code = "FIELD_TOO_LONG"

    def __init__(self, field: str, message: str, max_length: int):
        self.max_length = max_length
        super().__init__(field, message, details={"max_length": max_length})


class InvalidFormat(FieldError):
    code = "INVALID_FORMAT"


class InvalidEnum(FieldError):
    code = "INVALID_ENUM"


class UnsupportedRegion(FieldError):
    code = "UNSUPPORTED_REGION"


class OutOfRange(FieldError):
    code = "OUT_OF_RANGE"


# ==================== Carrier ====================


class CarrierError(ShippingError):
    """Carrier API failure. `retryable` decides whether the retry loop continues."""

    retryable = False

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: str = "CARRIER_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status_code = status_code
        super().__init__(message, code=code, details=details)


class CarrierAuthenticationError(CarrierError):
    """401 - the API key is wrong or revoked."""

    def __init__(self, message: str = "Authentication failed - check BigPost API key"):
        super().__init__(message, status_code=401, code="CARRIER_AUTH_FAILED")


class CarrierValidationError(CarrierError):
    """422 - the carrier rejected the request body."""

    def __init__(self, message: str, validation_errors: Optional[List[str]] = None):
        self.validation_errors = validation_errors or []
        super().__init__(
            message,
            status_code=422,
            code="CARRIER_VALIDATION_FAILED",
            details={"validation_errors": self.validation_errors},
        )


class CarrierRateLimited(CarrierError):
    """429 from the carrier, or our own sliding window is full."""

    retryable = True

    def __init__(self, message: str = "Rate limit exceeded", local: bool = False):
        self.local = local
        super().__init__(message, status_code=429, code="CARRIER_RATE_LIMITED")


class CarrierTransportError(CarrierError):
    """Timeout, connection failure, 5xx or any other unusable response."""

    retryable = True

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, status_code=status_code, code="CARRIER_TRANSPORT_ERROR")


# ==================== Quote orchestration ====================


class QuoteError(ShippingError):
    """Base for failures surfaced by QuoteService."""


class QuoteValidationError(QuoteError):
    """Address or items failed validation; nothing was sent anywhere."""

    def __init__(self, errors: Dict[str, FieldError]):
        self.errors = errors
        super().__init__(
            "Please correct the highlighted shipping details",
            code="VALIDATION_FAILED",
            details={"fields": self.field_messages()},
        )

    def field_messages(self) -> Dict[str, str]:
        return {name: err.message for name, err in self.errors.items()}


class NoOptionsAvailable(QuoteError):
    """Neither the carrier nor the fallback estimator produced a quote."""

    def __init__(self, message: str = "No shipping options are available for this address"):
        super().__init__(message, code="NO_OPTIONS_AVAILABLE")
