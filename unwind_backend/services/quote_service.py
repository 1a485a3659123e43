"""
Quote Service

Single entry point for checkout shipping quotes.

Flow:
1. Validate address and items (fail fast, never falls back)
2. Build the BigPost request
3. Ask BigPost; normalize and rank what comes back
4. On any carrier failure or an empty answer, use the fallback estimator

A response is always entirely carrier quotes or entirely fallback quotes.

Usage:
    service = QuoteService(carrier=client, fallback=FallbackEstimator(), origin=origin)
    result = await service.get_quotes(address, items, declared_value)
"""
import logging
from typing import List, Optional

from unwind_backend.modules.shipping.carriers.bigpost import BigPostClient, quotes_from_response
from unwind_backend.modules.shipping.errors import (
    CarrierAuthenticationError,
    CarrierError,
    CarrierValidationError,
    NoOptionsAvailable,
    QuoteValidationError,
)
from unwind_backend.modules.shipping.fallback import FallbackEstimator
from unwind_backend.modules.shipping.request_builder import build_quote_request
from unwind_backend.modules.shipping.types import (
    Address,
    NormalizedAddress,
    OriginLocation,
    PackageItem,
    Quote,
    QuoteResult,
    QuoteSource,
)
from unwind_backend.modules.shipping.validation import validate_address, validate_items

logger = logging.getLogger(__name__)


class QuoteService:
    """
    Orchestrates validation, the BigPost quote call and the local fallback.

    `carrier` may be None when BigPost is switched off; every request then
    goes straight to the fallback estimator.
    """

    def __init__(
        self,
        carrier: Optional[BigPostClient],
        fallback: FallbackEstimator,
        origin: OriginLocation,
    ):
        self.carrier = carrier
        self.fallback = fallback
        self.origin = origin

    def validate(self, address: Address, items: List[PackageItem]) -> NormalizedAddress:
        """Raise QuoteValidationError with every field problem, or return the clean address."""
        address_check = validate_address(address)
        errors = dict(address_check.errors)
        errors.update(validate_items(items))
        if errors:
            raise QuoteValidationError(errors)
        return address_check.address

    async def get_quotes(
        self,
        address: Address,
        items: List[PackageItem],
        declared_value: float = 0.0,
    ) -> QuoteResult:
        normalized = self.validate(address, items)

        warnings: List[str] = []
        if self.carrier is not None:
            built = build_quote_request(normalized, items, self.origin)
            warnings.extend(built.warnings)
            for warning in built.warnings:
                logger.warning(f"[Quote] {warning}")

            quotes = await self._carrier_quotes(built.request)
            if quotes:
                logger.info(
                    f"[Quote] {len(quotes)} carrier quote(s) for "
                    f"{normalized.postcode} {normalized.state.value}"
                )
                return QuoteResult(quotes=quotes, source=QuoteSource.CARRIER, warnings=warnings)
        else:
            logger.debug("[Quote] BigPost disabled, using fallback estimator")

        quotes = self.fallback.estimate(normalized, items, declared_value)
        if not quotes:
            logger.warning(
                f"[Quote] No options for {normalized.postcode} {normalized.state.value}"
            )
            raise NoOptionsAvailable()

        logger.info(
            f"[Quote] {len(quotes)} fallback quote(s) for "
            f"{normalized.postcode} {normalized.state.value}"
        )
        return QuoteResult(quotes=quotes, source=QuoteSource.FALLBACK, warnings=warnings)

    async def _carrier_quotes(self, request) -> List[Quote]:
        """Carrier quotes, or an empty list when the fallback should take over."""
        try:
            response = await self.carrier.get_quote(request)
        except CarrierAuthenticationError as e:
            logger.critical(f"[Quote] BigPost rejected our credentials, using fallback: {e.message}")
            return []
        except CarrierValidationError as e:
            logger.error(
                f"[Quote] BigPost rejected the quote request (bug in request building), "
                f"using fallback: {e.validation_errors}"
            )
            return []
        except CarrierError as e:
            logger.warning(f"[Quote] BigPost unavailable ({type(e).__name__}), using fallback: {e.message}")
            return []

        quotes = quotes_from_response(response)
        if not quotes:
            logger.warning("[Quote] BigPost returned no usable quotes, using fallback")
        return quotes
