"""
Shipping Schemas

Pydantic models for the storefront-facing shipping API. The storefront
speaks camelCase; attributes stay snake_case and are aliased.

Field limits that shoppers can get wrong (lengths, weights, postcodes) are
checked by the domain validators, not here, so every problem comes back in
one structured response.
"""
from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from unwind_backend.modules.shipping.delivery import estimate_delivery_date, format_delivery_days
from unwind_backend.modules.shipping.fallback import (
    DEFAULT_HEIGHT_CM,
    DEFAULT_ITEM_WEIGHT_KG,
    DEFAULT_LENGTH_CM,
    DEFAULT_WIDTH_CM,
)
from unwind_backend.modules.shipping.types import (
    DOMESTIC_COUNTRY,
    Address,
    Dimensions,
    PackageItem,
    Quote,
    QuoteSource,
)


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, allow_inf_nan=False)


# ==================== Request Schemas ====================


class DimensionsIn(ApiModel):
    length: float
    width: float
    height: float


class CartItemIn(ApiModel):
    """A cart line as the storefront sends it. Missing measurements use defaults."""
    id: Optional[str] = None
    name: str
    quantity: int = 1
    weight: Optional[float] = None
    dimensions: Optional[DimensionsIn] = None
    price: Optional[float] = None

    def to_package_item(self) -> PackageItem:
        dims = self.dimensions
        return PackageItem(
            name=self.name,
            weight=DEFAULT_ITEM_WEIGHT_KG if self.weight is None else self.weight,
            dimensions=Dimensions(
                length=dims.length if dims else DEFAULT_LENGTH_CM,
                width=dims.width if dims else DEFAULT_WIDTH_CM,
                height=dims.height if dims else DEFAULT_HEIGHT_CM,
            ),
            quantity=self.quantity,
        )


class DeliveryAddressIn(ApiModel):
    street: str = ""
    city: str = ""
    state: str = ""
    postcode: str = ""
    country: str = DOMESTIC_COUNTRY

    def to_address(self) -> Address:
        return Address(
            street=self.street,
            city=self.city,
            state=self.state,
            postcode=self.postcode,
            country=self.country,
        )


class ShippingQuoteRequest(ApiModel):
    delivery_address: DeliveryAddressIn
    items: List[CartItemIn] = []
    total_value: float = Field(0.0, ge=0)

    def package_items(self) -> List[PackageItem]:
        return [item.to_package_item() for item in self.items]


class SelectedQuoteIn(ApiModel):
    carrier_id: int
    service_code: Optional[str] = None
    authority_to_leave: bool = False
    service: str = "BigPost"
    price: float = Field(0.0, ge=0)
    delivery_days: int = Field(0, ge=0)

    def to_quote(self) -> Quote:
        return Quote(
            service=self.service,
            price=self.price,
            delivery_days=self.delivery_days,
            source=QuoteSource.CARRIER,
            carrier_id=self.carrier_id,
            service_code=self.service_code,
            authority_to_leave=self.authority_to_leave,
        )


class BookJobRequest(ApiModel):
    order_id: str = Field(..., min_length=1)
    contact_name: str = Field(..., min_length=1)
    buyer_email: str = Field(..., min_length=3)
    buyer_mobile_phone: Optional[str] = None
    selected_quote: SelectedQuoteIn
    delivery_address: DeliveryAddressIn
    items: List[CartItemIn] = Field(..., min_length=1)
    special_instructions: Optional[str] = None
    contains_dangerous_goods: bool = False
    has_declared_car_parts: bool = False


# ==================== Response Schemas ====================


class QuoteOut(ApiModel):
    """A shipping option, with display helpers for the checkout page."""
    service: str
    price: float
    delivery_days: int
    delivery_label: str
    estimated_delivery_date: date
    description: str = ""
    carrier: Optional[str] = None
    restrictions: List[str] = []
    source: QuoteSource
    carrier_id: Optional[int] = None
    service_code: Optional[str] = None
    authority_to_leave: bool = False

    @classmethod
    def from_quote(cls, quote: Quote, today: Optional[date] = None) -> "QuoteOut":
        return cls(
            service=quote.service,
            price=quote.price,
            delivery_days=quote.delivery_days,
            delivery_label=format_delivery_days(quote.delivery_days),
            estimated_delivery_date=estimate_delivery_date(quote.delivery_days, today),
            description=quote.description,
            carrier=quote.carrier,
            restrictions=list(quote.restrictions),
            source=quote.source,
            carrier_id=quote.carrier_id,
            service_code=quote.service_code,
            authority_to_leave=quote.authority_to_leave,
        )


class ShippingQuoteResponse(ApiModel):
    success: bool = True
    quotes: List[QuoteOut]
    fallback: bool = False
    warnings: List[str] = []


class AddressSuggestionOut(ApiModel):
    value: str
    label: str
    description: Optional[str] = None
    suburb: str
    postcode: str
    state: str
    locality_id: Optional[int] = None


class AddressSearchResponse(ApiModel):
    success: bool = True
    results: List[AddressSuggestionOut]
    fallback: bool = False


class BookJobResponse(ApiModel):
    success: bool = True
    job_id: int
    carrier_consignment_number: Optional[str] = None
    warnings: List[str] = []


class JobStatusEventOut(ApiModel):
    timestamp: str
    status: str
    location: Optional[str] = None
    description: Optional[str] = None


class JobStatusOut(ApiModel):
    success: bool = True
    job_id: int
    current_status: str
    history: List[JobStatusEventOut] = []


class DepotOut(ApiModel):
    id: int
    name: str
    address: str
    suburb: str
    postcode: str
    state: str
    distance_km: float


class DepotListResponse(ApiModel):
    success: bool = True
    depots: List[DepotOut]
