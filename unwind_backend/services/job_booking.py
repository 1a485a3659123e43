"""
Job Booking Service

Books the shopper's selected BigPost quote once payment has succeeded.
Only carrier quotes can be booked; fallback quotes have no carrier job behind
them and must be arranged manually.
"""
import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from unwind_backend.modules.shipping.carriers.bigpost import BigPostClient
from unwind_backend.modules.shipping.errors import CarrierError, ShippingError
from unwind_backend.modules.shipping.request_builder import build_job_request
from unwind_backend.modules.shipping.types import Address, OriginLocation, PackageItem, Quote
from unwind_backend.services.quote_service import QuoteService

logger = logging.getLogger(__name__)


@dataclass
class BookingContact:
    name: str
    email: str
    mobile_phone: Optional[str] = None


@dataclass
class BookingResult:
    job_id: int
    carrier_consignment_number: Optional[str] = None
    warnings: Optional[List[str]] = None


def _normalize_phone(phone: Optional[str]) -> Optional[str]:
    """BigPost takes up to 10 digits, so +61 numbers are rewritten as 0XXXXXXXXX."""
    if not phone:
        return None
    digits = re.sub(r"\D", "", phone)
    if digits.startswith("61") and len(digits) == 11:
        digits = "0" + digits[2:]
    if len(digits) > 10:
        raise ShippingError("Mobile phone must be an Australian number", code="INVALID_PHONE")
    return digits or None


class JobBookingService:
    def __init__(
        self,
        carrier: Optional[BigPostClient],
        quote_service: QuoteService,
        origin: OriginLocation,
        source_type: int,
    ):
        self.carrier = carrier
        self.quote_service = quote_service
        self.origin = origin
        self.source_type = source_type

    async def book(
        self,
        *,
        order_id: str,
        contact: BookingContact,
        address: Address,
        items: List[PackageItem],
        quote: Quote,
        special_instructions: Optional[str] = None,
        contains_dangerous_goods: bool = False,
        has_declared_car_parts: bool = False,
    ) -> BookingResult:
        if self.carrier is None:
            raise ShippingError("BigPost shipping is not enabled or configured", code="CARRIER_DISABLED")
        if not quote.bookable:
            raise ShippingError(
                "Only carrier quotes can be booked with BigPost", code="QUOTE_NOT_BOOKABLE"
            )

        normalized = self.quote_service.validate(address, items)
        request, warnings = build_job_request(
            address=normalized,
            items=items,
            origin=self.origin,
            quote=quote,
            contact_name=contact.name,
            buyer_email=contact.email,
            buyer_mobile_phone=_normalize_phone(contact.mobile_phone),
            reference=order_id,
            source_type=self.source_type,
            special_instructions=special_instructions,
            contains_dangerous_goods=contains_dangerous_goods,
            has_declared_car_parts=has_declared_car_parts,
        )

        try:
            response = await self.carrier.create_job(request)
        except CarrierError as e:
            logger.error(f"[BigPost] Job booking failed for order {order_id}: {e.message}")
            raise

        if not response.success or response.job_id is None:
            message = response.error_message or "Failed to book job with BigPost"
            logger.error(
                f"[BigPost] Job rejected for order {order_id}: {message} {response.validation_errors}"
            )
            raise ShippingError(
                message,
                code="BOOKING_REJECTED",
                details={"validation_errors": response.validation_errors},
            )

        logger.info(
            f"[BigPost] Booked job {response.job_id} for order {order_id} "
            f"(consignment {response.carrier_consignment_number})"
        )
        return BookingResult(
            job_id=response.job_id,
            carrier_consignment_number=response.carrier_consignment_number,
            warnings=warnings,
        )
