"""
Shipping Domain Types

Carrier-agnostic data classes shared by validation, request building,
the BigPost client, the fallback estimator and the cart session.
Units are metric throughout: kilograms and centimetres.
"""
from dataclasses import dataclass, field, asdict
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional, Tuple


# Items heavier than this must travel on a pallet
PALLET_WEIGHT_THRESHOLD_KG = 40.0

DOMESTIC_COUNTRY = "Australia"


# =============================================================================
# Enumerations
# =============================================================================

class StateCode(str, Enum):
    ACT = "ACT"
    NSW = "NSW"
    NT = "NT"
    QLD = "QLD"
    SA = "SA"
    TAS = "TAS"
    VIC = "VIC"
    WA = "WA"


STATE_NAMES: Dict[StateCode, str] = {
    StateCode.ACT: "Australian Capital Territory",
    StateCode.NSW: "New South Wales",
    StateCode.NT: "Northern Territory",
    StateCode.QLD: "Queensland",
    StateCode.SA: "South Australia",
    StateCode.TAS: "Tasmania",
    StateCode.VIC: "Victoria",
    StateCode.WA: "Western Australia",
}


class JobType(IntEnum):
    """BigPost job classification."""
    DEPOT = 1
    DIRECT = 2
    HOME_DELIVERY = 3


class ItemType(IntEnum):
    """BigPost per-item packaging type."""
    CARTON = 0
    SKID = 1
    PALLET = 2
    PACK = 3
    CRATE = 4
    ROLL = 5
    SATCHEL = 6
    STILLAGE = 7
    TUBE = 8
    BAG = 9


class QuoteSource(str, Enum):
    CARRIER = "carrier"
    FALLBACK = "fallback"


# =============================================================================
# Addresses
# =============================================================================

@dataclass
class Address:
    """Destination address as entered by the shopper (unvalidated)."""
    street: str
    city: str
    state: str
    postcode: str
    country: str = DOMESTIC_COUNTRY


@dataclass(frozen=True)
class NormalizedAddress:
    """Address that passed every field validator."""
    street: str
    city: str
    state: StateCode
    postcode: str
    country: str = DOMESTIC_COUNTRY


@dataclass(frozen=True)
class OriginLocation:
    """Fixed warehouse pickup location."""
    name: str
    address: str
    suburb: str
    postcode: str
    state: StateCode
    address_line_two: str = ""

    @classmethod
    def from_settings(cls, settings) -> "OriginLocation":
        return cls(
            name=settings.SHIPPING_ORIGIN_NAME,
            address=settings.SHIPPING_ORIGIN_ADDRESS,
            address_line_two=settings.SHIPPING_ORIGIN_ADDRESS_LINE_TWO,
            suburb=settings.SHIPPING_ORIGIN_SUBURB,
            postcode=settings.SHIPPING_ORIGIN_POSTCODE,
            state=StateCode(settings.SHIPPING_ORIGIN_STATE.upper()),
        )


# =============================================================================
# Packages
# =============================================================================

@dataclass(frozen=True)
class Dimensions:
    """Item dimensions in centimetres."""
    length: float
    width: float
    height: float

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.length, self.width, self.height)


@dataclass(frozen=True)
class PackageItem:
    """One cart line as it ships."""
    name: str
    weight: float  # kg, per unit
    dimensions: Dimensions
    quantity: int = 1

    @property
    def needs_pallet(self) -> bool:
        return self.weight > PALLET_WEIGHT_THRESHOLD_KG


# =============================================================================
# Quotes
# =============================================================================

@dataclass(frozen=True)
class Quote:
    """A shipping option offered to the shopper."""
    service: str
    price: float
    delivery_days: int
    description: str = ""
    carrier: Optional[str] = None
    restrictions: Tuple[str, ...] = ()
    source: QuoteSource = QuoteSource.CARRIER
    # Carrier booking references (absent on fallback quotes)
    carrier_id: Optional[int] = None
    service_code: Optional[str] = None
    authority_to_leave: bool = False

    @property
    def is_fallback(self) -> bool:
        return self.source == QuoteSource.FALLBACK

    @property
    def bookable(self) -> bool:
        return self.source == QuoteSource.CARRIER and self.carrier_id is not None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["restrictions"] = list(self.restrictions)
        data["source"] = self.source.value
        return data


@dataclass
class QuoteResult:
    """Ranked quotes from exactly one path (carrier or fallback)."""
    quotes: List[Quote]
    source: QuoteSource
    warnings: List[str] = field(default_factory=list)

    @property
    def is_fallback(self) -> bool:
        return self.source == QuoteSource.FALLBACK
