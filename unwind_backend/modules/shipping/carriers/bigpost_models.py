"""
BigPost API wire models

One request/response pair per endpoint. Attributes are snake_case in Python
and serialize to the PascalCase names BigPost expects via the alias generator.
Use `to_wire()` for outbound bodies and `model_validate()` for inbound JSON.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_pascal

from unwind_backend.modules.shipping.types import ItemType, JobType, StateCode


class BigPostModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


# ==================== Shared blocks ====================


class Locality(BigPostModel):
    id: Optional[int] = None
    suburb: str = Field(..., max_length=30)
    postcode: str = Field(..., pattern=r"^[0-9]{4}$")
    state: StateCode


class Location(BigPostModel):
    name: str = Field(..., max_length=255)
    address: str = Field(..., max_length=30)
    address_line_two: str = Field("", max_length=30)
    locality_id: Optional[int] = None
    locality: Optional[Locality] = None


class QuoteItem(BigPostModel):
    item_type: ItemType
    description: str = Field(..., max_length=50)
    quantity: int
    height: float
    width: float
    length: float
    weight: float
    consolidatable: bool = True


# ==================== Quotes ====================


class GetQuoteRequest(BigPostModel):
    job_type: JobType
    buyer_is_business: bool
    buyer_has_forklift: bool
    return_authority_to_leave_options: bool
    pickup_location: Location
    buyer_location: Location
    items: List[QuoteItem]
    job_date: Optional[str] = None
    depot_id: Optional[int] = None


class QuoteOption(BigPostModel):
    service_code: Optional[str] = None
    service_name: Optional[str] = None
    price: Optional[float] = None
    estimated_delivery_days: Optional[int] = None
    carrier_id: Optional[int] = None
    carrier_name: Optional[str] = None
    description: Optional[str] = None
    authority_to_leave: Optional[bool] = None
    restrictions: List[str] = []


class GetQuoteResponse(BigPostModel):
    success: bool = False
    quotes: List[QuoteOption] = []
    error_message: Optional[str] = None
    request_id: Optional[str] = None


# ==================== Jobs ====================


class CreateJobRequest(BigPostModel):
    contact_name: str = Field(..., max_length=50)
    buyer_email: str
    buyer_mobile_phone: Optional[str] = Field(None, max_length=10)
    buyer_other_phone: Optional[str] = Field(None, max_length=10)
    carrier_id: int
    reference: Optional[str] = Field(None, max_length=50)
    job_type: JobType
    contains_dangerous_goods: bool = False
    buyer_has_forklift: bool = False
    has_declared_car_parts: bool = False
    special_instructions: Optional[str] = None
    pickup_location: Location
    buyer_location: Location
    items: List[QuoteItem]
    authority_to_leave: bool = False
    service_code: Optional[str] = None
    source_type: int


class CreateJobResponse(BigPostModel):
    success: bool = False
    job_id: Optional[int] = None
    carrier_consignment_number: Optional[str] = None
    error_message: Optional[str] = None
    validation_errors: List[str] = []


class JobStatusRequest(BigPostModel):
    job_ids: List[int]


class JobStatusEvent(BigPostModel):
    timestamp: str
    status: str
    location: Optional[str] = None
    description: Optional[str] = None


class JobStatusResult(BigPostModel):
    job_id: int
    current_status: str
    status_history: List[JobStatusEvent] = []


class JobStatusResponse(BigPostModel):
    success: bool = False
    results: List[JobStatusResult] = []
    error_message: Optional[str] = None


# ==================== Lookups ====================


class SuburbSearchResult(BigPostModel):
    id: int
    suburb: str
    postcode: str
    state: StateCode


class SuburbSearchResponse(BigPostModel):
    success: bool = False
    results: List[SuburbSearchResult] = []
    error_message: Optional[str] = None


class DepotSearchRequest(BigPostModel):
    buyer_location: Location
    radius_km: Optional[float] = None


class DepotSearchResult(BigPostModel):
    id: int
    name: str
    address: str
    suburb: str
    postcode: str
    state: StateCode
    distance_km: float


class DepotSearchResponse(BigPostModel):
    success: bool = False
    results: List[DepotSearchResult] = []
    error_message: Optional[str] = None
