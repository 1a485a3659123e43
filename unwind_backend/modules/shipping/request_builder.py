"""
BigPost Request Builder

Pure mapping from validated cart data to BigPost request bodies.

Weight drives classification:
- Any item over 40kg makes the whole shipment a DIRECT (business) job with
  forklift handling and no authority-to-leave options
- Each item is independently a PALLET (not consolidatable) or a CARTON
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from unwind_backend.modules.shipping.carriers.bigpost_models import (
    CreateJobRequest,
    GetQuoteRequest,
    Locality,
    Location,
    QuoteItem,
)
from unwind_backend.modules.shipping.types import (
    ItemType,
    JobType,
    NormalizedAddress,
    OriginLocation,
    PackageItem,
    Quote,
)
from unwind_backend.modules.shipping.validation import MAX_ITEM_NAME_LENGTH, MAX_STREET_LENGTH

logger = logging.getLogger(__name__)

MAX_LOCATION_NAME_LENGTH = 255


@dataclass
class BuiltQuoteRequest:
    request: GetQuoteRequest
    warnings: List[str] = field(default_factory=list)

    @property
    def needs_pallet(self) -> bool:
        return self.request.job_type == JobType.DIRECT


def shipment_needs_pallet(items: List[PackageItem]) -> bool:
    return any(item.needs_pallet for item in items)


def job_type_for(items: List[PackageItem]) -> JobType:
    return JobType.DIRECT if shipment_needs_pallet(items) else JobType.HOME_DELIVERY


def build_pickup_location(origin: OriginLocation) -> Location:
    return Location(
        name=origin.name,
        address=origin.address,
        address_line_two=origin.address_line_two,
        locality=Locality(suburb=origin.suburb, postcode=origin.postcode, state=origin.state),
    )


def build_buyer_location(address: NormalizedAddress) -> Location:
    return Location(
        name=address.street[:MAX_LOCATION_NAME_LENGTH],
        address=address.street[:MAX_STREET_LENGTH],
        address_line_two="",
        locality=Locality(suburb=address.city, postcode=address.postcode, state=address.state),
    )


def build_item(item: PackageItem) -> Tuple[QuoteItem, Optional[str]]:
    """Map one cart line; returns the item and a truncation warning if any."""
    warning = None
    description = item.name
    if len(description) > MAX_ITEM_NAME_LENGTH:
        description = description[:MAX_ITEM_NAME_LENGTH]
        warning = (
            f"Item name truncated from {len(item.name)} to {MAX_ITEM_NAME_LENGTH} "
            f"characters: '{description}'"
        )

    return QuoteItem(
        item_type=ItemType.PALLET if item.needs_pallet else ItemType.CARTON,
        description=description,
        quantity=item.quantity,
        height=item.dimensions.height,
        width=item.dimensions.width,
        length=item.dimensions.length,
        weight=item.weight,
        consolidatable=not item.needs_pallet,
    ), warning


def build_items(items: List[PackageItem]) -> Tuple[List[QuoteItem], List[str]]:
    built, warnings = [], []
    for item in items:
        quote_item, warning = build_item(item)
        built.append(quote_item)
        if warning:
            warnings.append(warning)
    return built, warnings


def build_quote_request(
    address: NormalizedAddress,
    items: List[PackageItem],
    origin: OriginLocation,
) -> BuiltQuoteRequest:
    needs_pallet = shipment_needs_pallet(items)
    quote_items, warnings = build_items(items)

    request = GetQuoteRequest(
        job_type=job_type_for(items),
        buyer_is_business=needs_pallet,
        buyer_has_forklift=needs_pallet,
        return_authority_to_leave_options=not needs_pallet,
        pickup_location=build_pickup_location(origin),
        buyer_location=build_buyer_location(address),
        items=quote_items,
    )
    return BuiltQuoteRequest(request=request, warnings=warnings)


def build_job_request(
    *,
    address: NormalizedAddress,
    items: List[PackageItem],
    origin: OriginLocation,
    quote: Quote,
    contact_name: str,
    buyer_email: str,
    reference: str,
    source_type: int,
    buyer_mobile_phone: Optional[str] = None,
    special_instructions: Optional[str] = None,
    contains_dangerous_goods: bool = False,
    has_declared_car_parts: bool = False,
) -> Tuple[CreateJobRequest, List[str]]:
    """Booking body for a carrier quote the shopper already paid for."""
    quote_items, warnings = build_items(items)

    request = CreateJobRequest(
        contact_name=contact_name[:50],
        buyer_email=buyer_email,
        buyer_mobile_phone=buyer_mobile_phone,
        carrier_id=quote.carrier_id,
        reference=reference[:50],
        job_type=job_type_for(items),
        contains_dangerous_goods=contains_dangerous_goods,
        buyer_has_forklift=shipment_needs_pallet(items),
        has_declared_car_parts=has_declared_car_parts,
        special_instructions=special_instructions,
        pickup_location=build_pickup_location(origin),
        buyer_location=build_buyer_location(address),
        items=quote_items,
        authority_to_leave=quote.authority_to_leave,
        service_code=quote.service_code,
        source_type=source_type,
    )
    return request, warnings
