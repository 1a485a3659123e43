"""
Shipping API Routes

Endpoints consumed by the checkout:
- Quotes for a cart and destination (carrier, or local fallback)
- Suburb/postcode autocomplete
- Booking the selected BigPost quote after payment
- Job status and nearby depots
"""
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from unwind_backend.api.deps import (
    get_address_search_service,
    get_bigpost_client,
    get_job_booking_service,
    get_quote_service,
)
from unwind_backend.core.config import settings
from unwind_backend.core.error_handler import sanitize_error_message
from unwind_backend.core.rate_limit import limiter
from unwind_backend.modules.shipping.carriers.bigpost import BigPostClient
from unwind_backend.modules.shipping.carriers.bigpost_models import DepotSearchRequest, Locality, Location
from unwind_backend.modules.shipping.errors import (
    CarrierError,
    FieldError,
    NoOptionsAvailable,
    QuoteValidationError,
    ShippingError,
)
from unwind_backend.modules.shipping.validation import validate_city, validate_postcode, validate_state
from unwind_backend.schemas.shipping import (
    AddressSearchResponse,
    AddressSuggestionOut,
    BookJobRequest,
    BookJobResponse,
    DepotListResponse,
    DepotOut,
    JobStatusEventOut,
    JobStatusOut,
    QuoteOut,
    ShippingQuoteRequest,
    ShippingQuoteResponse,
)
from unwind_backend.services.address_search import AddressSearchService
from unwind_backend.services.job_booking import BookingContact, JobBookingService
from unwind_backend.services.quote_service import QuoteService

logger = logging.getLogger(__name__)

router = APIRouter()


# ==================== Helper Functions ====================


def error_response(status_code: int, message: str, **extra: Any) -> JSONResponse:
    content = {"success": False, "error": message}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


def carrier_required(client: Optional[BigPostClient]) -> Optional[JSONResponse]:
    if client is None:
        return error_response(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "BigPost shipping is not enabled or configured",
        )
    return None


# ==================== Quotes ====================


@router.post("/shipping/quote", response_model=ShippingQuoteResponse)
@limiter.limit(settings.RATE_LIMIT_QUOTE)
async def get_shipping_quote(
    request: Request,
    payload: ShippingQuoteRequest,
    quote_service: QuoteService = Depends(get_quote_service),
):
    """
    Shipping options for a cart.

    BigPost quotes when the carrier is reachable, otherwise estimates from
    the zone table (`fallback: true`). Never a mix of both.
    """
    try:
        result = await quote_service.get_quotes(
            payload.delivery_address.to_address(),
            payload.package_items(),
            payload.total_value,
        )
    except QuoteValidationError as e:
        return error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY, e.message, fields=e.field_messages()
        )
    except NoOptionsAvailable as e:
        return error_response(status.HTTP_404_NOT_FOUND, e.message)

    return ShippingQuoteResponse(
        quotes=[QuoteOut.from_quote(q) for q in result.quotes],
        fallback=result.is_fallback,
        warnings=result.warnings,
    )


# ==================== Address Search ====================


@router.get("/address-search", response_model=AddressSearchResponse)
async def address_search(
    q: str = Query("", description="Suburb or postcode fragment (2+ characters)"),
    type: Optional[str] = Query(None, description="street, suburb, city or postcode"),
    state: Optional[str] = Query(None, description="Restrict to a state code"),
    search_service: AddressSearchService = Depends(get_address_search_service),
):
    try:
        result = await search_service.search(q, search_type=type, state=state)
    except ShippingError as e:
        return error_response(status.HTTP_400_BAD_REQUEST, e.message, results=[])

    return AddressSearchResponse(
        results=[AddressSuggestionOut(**s.to_dict()) for s in result.results],
        fallback=result.fallback,
    )


# ==================== Job Booking ====================


@router.post("/shipping/book-job", response_model=BookJobResponse)
async def book_job(
    payload: BookJobRequest,
    booking_service: JobBookingService = Depends(get_job_booking_service),
):
    """Book the selected BigPost quote for a paid order."""
    try:
        result = await booking_service.book(
            order_id=payload.order_id,
            contact=BookingContact(
                name=payload.contact_name,
                email=payload.buyer_email,
                mobile_phone=payload.buyer_mobile_phone,
            ),
            address=payload.delivery_address.to_address(),
            items=[item.to_package_item() for item in payload.items],
            quote=payload.selected_quote.to_quote(),
            special_instructions=payload.special_instructions,
            contains_dangerous_goods=payload.contains_dangerous_goods,
            has_declared_car_parts=payload.has_declared_car_parts,
        )
    except QuoteValidationError as e:
        return error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY, e.message, fields=e.field_messages()
        )
    except CarrierError as e:
        return error_response(
            status.HTTP_502_BAD_GATEWAY,
            "Failed to book job with BigPost",
            detail=sanitize_error_message(e.message),
        )
    except ShippingError as e:
        return error_response(status.HTTP_400_BAD_REQUEST, e.message, code=e.code)

    return BookJobResponse(
        job_id=result.job_id,
        carrier_consignment_number=result.carrier_consignment_number,
        warnings=result.warnings or [],
    )


@router.get("/shipping/jobs/{job_id}/status", response_model=JobStatusOut)
async def get_job_status(
    job_id: int,
    history: bool = Query(True, description="Include the full status history"),
    client: Optional[BigPostClient] = Depends(get_bigpost_client),
):
    unavailable = carrier_required(client)
    if unavailable:
        return unavailable

    try:
        if history:
            response = await client.get_job_status_history([job_id])
        else:
            response = await client.get_current_job_status([job_id])
    except CarrierError as e:
        logger.warning(f"[BigPost] Status lookup failed for job {job_id}: {e.message}")
        return error_response(status.HTTP_502_BAD_GATEWAY, "Job status is temporarily unavailable")

    match = next((r for r in response.results if r.job_id == job_id), None)
    if not response.success or match is None:
        return error_response(status.HTTP_404_NOT_FOUND, response.error_message or "Job not found")

    return JobStatusOut(
        job_id=match.job_id,
        current_status=match.current_status,
        history=[
            JobStatusEventOut(
                timestamp=event.timestamp,
                status=event.status,
                location=event.location,
                description=event.description,
            )
            for event in match.status_history
        ],
    )


# ==================== Depots ====================


@router.get("/shipping/depots", response_model=DepotListResponse)
async def find_depots(
    suburb: str = Query(...),
    postcode: str = Query(...),
    state: str = Query(...),
    radius_km: Optional[float] = Query(None, gt=0, le=500),
    client: Optional[BigPostClient] = Depends(get_bigpost_client),
):
    unavailable = carrier_required(client)
    if unavailable:
        return unavailable

    try:
        city = validate_city(suburb)
        location = Location(
            name=city,
            address=city,
            locality=Locality(
                suburb=city, postcode=validate_postcode(postcode), state=validate_state(state)
            ),
        )
    except FieldError as e:
        return error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY, e.message, fields={e.field: e.message}
        )

    try:
        response = await client.find_closest_depots(
            DepotSearchRequest(buyer_location=location, radius_km=radius_km)
        )
    except CarrierError as e:
        logger.warning(f"[BigPost] Depot search failed: {e.message}")
        return error_response(status.HTTP_502_BAD_GATEWAY, "Depot search is temporarily unavailable")

    return DepotListResponse(
        depots=[
            DepotOut(
                id=d.id,
                name=d.name,
                address=d.address,
                suburb=d.suburb,
                postcode=d.postcode,
                state=d.state.value,
                distance_km=d.distance_km,
            )
            for d in response.results
        ]
    )
