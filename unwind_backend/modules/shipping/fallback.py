"""
Fallback Shipping Estimator

Local zone-table pricing used when BigPost is disabled, unreachable or
returns nothing usable. No network access; results are tagged `fallback`.

Zones are checked in order and the first zone listing the state wins.
The default table is a strict partition of the eight states.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from unwind_backend.modules.shipping.types import (
    DOMESTIC_COUNTRY,
    PackageItem,
    NormalizedAddress,
    Quote,
    QuoteSource,
    StateCode,
)

logger = logging.getLogger(__name__)

MAX_STACKED_HEIGHT_CM = 200

# Defaults for cart lines missing measurements
DEFAULT_ITEM_WEIGHT_KG = 1.0
DEFAULT_LENGTH_CM = 30.0
DEFAULT_WIDTH_CM = 20.0
DEFAULT_HEIGHT_CM = 10.0


@dataclass(frozen=True)
class ShippingZone:
    name: str
    states: FrozenSet[StateCode]
    base_rate: float
    express_rate: float
    standard_days: int
    express_days: int
    remote: bool = False


@dataclass(frozen=True)
class InternationalRate:
    country: str
    rate: float
    delivery_days: int
    service: str = "Standard International"


@dataclass(frozen=True)
class ShipmentPackage:
    """A cart collapsed into one consignment."""
    weight: float
    length: float
    width: float
    height: float
    value: float = 0.0

    @property
    def largest_dimension(self) -> float:
        return max(self.length, self.width, self.height)


DEFAULT_ZONES: Tuple[ShippingZone, ...] = (
    ShippingZone(
        name="Metro Areas",
        states=frozenset({StateCode.VIC, StateCode.NSW, StateCode.ACT, StateCode.QLD, StateCode.SA}),
        base_rate=12.0,
        express_rate=27.0,
        standard_days=3,
        express_days=1,
    ),
    ShippingZone(
        name="Regional Areas",
        states=frozenset({StateCode.TAS}),
        base_rate=18.0,
        express_rate=33.0,
        standard_days=5,
        express_days=2,
    ),
    ShippingZone(
        name="Remote Areas",
        states=frozenset({StateCode.WA, StateCode.NT}),
        base_rate=25.0,
        express_rate=40.0,
        standard_days=7,
        express_days=3,
        remote=True,
    ),
)

DEFAULT_INTERNATIONAL_RATES: Tuple[InternationalRate, ...] = (
    InternationalRate("New Zealand", 35.0, 7),
    InternationalRate("United States", 45.0, 14),
    InternationalRate("United Kingdom", 50.0, 18),
    InternationalRate("Canada", 48.0, 16),
)

# (upper bound kg, surcharge); anything heavier pays WEIGHT_SURCHARGE_CAP
WEIGHT_SURCHARGE_STEPS: Tuple[Tuple[float, float], ...] = (
    (5.0, 0.0),
    (10.0, 5.0),
    (20.0, 12.0),
    (30.0, 20.0),
)
WEIGHT_SURCHARGE_CAP = 30.0

INTERNATIONAL_FREE_WEIGHT_KG = 5.0
INTERNATIONAL_PER_KG = 2.0
INTERNATIONAL_VALUE_THRESHOLD = 1000.0
INTERNATIONAL_VALUE_RATE = 0.02

HEAVY_ITEM_KG = 50.0
OVERSIZED_CM = 150.0
HIGH_VALUE = 2000.0
INTERNATIONAL_FREIGHT_KG = 20.0


def weight_surcharge(weight: float) -> float:
    for upper, surcharge in WEIGHT_SURCHARGE_STEPS:
        if weight <= upper:
            return surcharge
    return WEIGHT_SURCHARGE_CAP


def aggregate_package(items: Sequence[PackageItem], declared_value: float = 0.0) -> ShipmentPackage:
    """
    Collapse cart lines into one consignment: weights add, footprint is the
    largest length and width, heights stack (capped at 200cm).
    """
    if not items:
        return ShipmentPackage(
            weight=DEFAULT_ITEM_WEIGHT_KG,
            length=DEFAULT_LENGTH_CM,
            width=DEFAULT_WIDTH_CM,
            height=DEFAULT_HEIGHT_CM,
            value=declared_value,
        )

    weight = sum((item.weight or DEFAULT_ITEM_WEIGHT_KG) * item.quantity for item in items)
    length = max(item.dimensions.length or DEFAULT_LENGTH_CM for item in items)
    width = max(item.dimensions.width or DEFAULT_WIDTH_CM for item in items)
    height = sum((item.dimensions.height or DEFAULT_HEIGHT_CM) * item.quantity for item in items)

    return ShipmentPackage(
        weight=weight,
        length=length,
        width=width,
        height=min(height, MAX_STACKED_HEIGHT_CM),
        value=declared_value,
    )


def package_restrictions(package: ShipmentPackage) -> List[str]:
    restrictions = []
    if package.weight > HEAVY_ITEM_KG:
        restrictions.append("Heavy items may require special handling")
    if package.largest_dimension > OVERSIZED_CM:
        restrictions.append("Oversized items may incur additional charges")
    if package.value > HIGH_VALUE:
        restrictions.append("Signature required for high-value items")
    return restrictions


@dataclass
class FallbackEstimator:
    """Zone-table estimator. Construct with `from_settings` in the app."""
    free_shipping_threshold: float = 500.0
    remote_free_shipping_threshold: float = 750.0
    zones: Sequence[ShippingZone] = DEFAULT_ZONES
    international_rates: Sequence[InternationalRate] = DEFAULT_INTERNATIONAL_RATES
    _international_by_country: Dict[str, InternationalRate] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self):
        self._international_by_country = {
            rate.country.lower(): rate for rate in self.international_rates
        }
        overlap = self._overlapping_states()
        if overlap:
            logger.warning(
                f"Fallback zones overlap on {sorted(s.value for s in overlap)}; "
                f"first listed zone wins"
            )

    @classmethod
    def from_settings(cls, settings) -> "FallbackEstimator":
        return cls(
            free_shipping_threshold=settings.FREE_SHIPPING_THRESHOLD,
            remote_free_shipping_threshold=settings.REMOTE_FREE_SHIPPING_THRESHOLD,
        )

    def _overlapping_states(self) -> FrozenSet[StateCode]:
        seen, overlap = set(), set()
        for zone in self.zones:
            overlap |= seen & zone.states
            seen |= zone.states
        return frozenset(overlap)

    def zone_for(self, state: StateCode) -> Optional[ShippingZone]:
        for zone in self.zones:
            if state in zone.states:
                return zone
        return None

    def free_shipping_threshold_for(self, zone: ShippingZone) -> float:
        return self.remote_free_shipping_threshold if zone.remote else self.free_shipping_threshold

    def is_free_shipping_eligible(self, zone: ShippingZone, value: float) -> bool:
        return value >= self.free_shipping_threshold_for(zone)

    # ==================== Estimates ====================

    def estimate(
        self,
        address: NormalizedAddress,
        items: Sequence[PackageItem],
        declared_value: float = 0.0,
    ) -> List[Quote]:
        package = aggregate_package(items, declared_value)
        return self.quote_package(package, state=address.state, country=address.country)

    def quote_package(
        self,
        package: ShipmentPackage,
        state: Optional[StateCode] = None,
        country: str = DOMESTIC_COUNTRY,
    ) -> List[Quote]:
        """All fallback options for a package, cheapest first. May be empty."""
        if country.strip().lower() != DOMESTIC_COUNTRY.lower():
            quotes = self._international_quotes(package, country)
        elif state is None:
            quotes = []
        else:
            quotes = self._domestic_quotes(package, StateCode(state))
        return sorted(quotes, key=lambda q: q.price)

    def _domestic_quotes(self, package: ShipmentPackage, state: StateCode) -> List[Quote]:
        zone = self.zone_for(state)
        if zone is None:
            logger.warning(f"No fallback zone covers {state.value}")
            return []

        surcharge = weight_surcharge(package.weight)
        restrictions = tuple(package_restrictions(package))

        quotes = [
            Quote(
                service="Standard Shipping",
                price=round(zone.base_rate + surcharge, 2),
                delivery_days=zone.standard_days,
                description=f"Standard delivery to {zone.name}",
                restrictions=restrictions,
                source=QuoteSource.FALLBACK,
            ),
            Quote(
                service="Express Shipping",
                price=round(zone.express_rate + surcharge, 2),
                delivery_days=zone.express_days,
                description=f"Express delivery to {zone.name}",
                restrictions=restrictions,
                source=QuoteSource.FALLBACK,
            ),
        ]

        if self.is_free_shipping_eligible(zone, package.value):
            threshold = self.free_shipping_threshold_for(zone)
            quotes.append(
                Quote(
                    service="Free Shipping",
                    price=0.0,
                    delivery_days=zone.standard_days,
                    description=f"Free standard shipping on orders over ${threshold:.0f}",
                    restrictions=(f"Minimum order value: ${threshold:.0f}",),
                    source=QuoteSource.FALLBACK,
                )
            )
        return quotes

    def _international_quotes(self, package: ShipmentPackage, country: str) -> List[Quote]:
        rate = self._international_by_country.get(country.strip().lower())
        if rate is None:
            logger.info(f"No international fallback rate for {country}")
            return []

        price = rate.rate
        if package.weight > INTERNATIONAL_FREE_WEIGHT_KG:
            price += (package.weight - INTERNATIONAL_FREE_WEIGHT_KG) * INTERNATIONAL_PER_KG
        if package.value > INTERNATIONAL_VALUE_THRESHOLD:
            price += (package.value - INTERNATIONAL_VALUE_THRESHOLD) * INTERNATIONAL_VALUE_RATE

        restrictions = [
            "Subject to customs duties and import taxes",
            "Delivery times may vary due to customs processing",
        ]
        if package.weight > INTERNATIONAL_FREIGHT_KG:
            restrictions.append("Heavy items may require freight shipping")

        return [
            Quote(
                service=rate.service,
                price=round(price, 2),
                delivery_days=rate.delivery_days,
                description=f"International shipping to {rate.country}",
                restrictions=tuple(restrictions),
                source=QuoteSource.FALLBACK,
            )
        ]
