"""
Address and Item Validation

BigPost rejects requests whose address fields exceed its column sizes or use
unknown states, so everything is checked here before a request is built.
Field validators raise a FieldError subclass and return the cleaned value;
the aggregate functions collect every failure so the checkout form can show
all problems at once.
"""
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from unwind_backend.modules.shipping.errors import (
    FieldError,
    FieldRequired,
    FieldTooLong,
    InvalidEnum,
    InvalidFormat,
    OutOfRange,
    UnsupportedRegion,
)
from unwind_backend.modules.shipping.types import (
    DOMESTIC_COUNTRY,
    STATE_NAMES,
    Address,
    NormalizedAddress,
    PackageItem,
    StateCode,
)

logger = logging.getLogger(__name__)

MAX_STREET_LENGTH = 30
MAX_CITY_LENGTH = 30
MAX_ITEM_NAME_LENGTH = 50
MAX_ITEM_WEIGHT_KG = 1000
MAX_ITEM_DIMENSION_CM = 200
MAX_ITEM_QUANTITY = 100

_POSTCODE_RE = re.compile(r"^[0-9]{4}$")
_STATE_BY_NAME = {name.lower(): code for code, name in STATE_NAMES.items()}


@dataclass
class AddressValidationResult:
    """Outcome of validate_address; `address` is set only when valid."""
    address: Optional[NormalizedAddress] = None
    errors: Dict[str, FieldError] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def messages(self) -> Dict[str, str]:
        return {name: err.message for name, err in self.errors.items()}


# ==================== Address fields ====================


def validate_street(street: Optional[str]) -> str:
    value = (street or "").strip()
    if not value:
        raise FieldRequired("street", "Street address is required")
    if len(value) > MAX_STREET_LENGTH:
        raise FieldTooLong(
            "street",
            f"Street address must be {MAX_STREET_LENGTH} characters or less",
            MAX_STREET_LENGTH,
        )
    return value


def validate_city(city: Optional[str]) -> str:
    value = (city or "").strip()
    if not value:
        raise FieldRequired("city", "City is required")
    if len(value) > MAX_CITY_LENGTH:
        raise FieldTooLong(
            "city",
            f"City must be {MAX_CITY_LENGTH} characters or less",
            MAX_CITY_LENGTH,
        )
    return value


def validate_state(state: Optional[str]) -> StateCode:
    """Accept a state code or full state name in any case."""
    value = (state or "").strip()
    if not value:
        raise FieldRequired("state", "State is required")

    try:
        return StateCode(value.upper())
    except ValueError:
        pass

    code = _STATE_BY_NAME.get(value.lower())
    if code is None:
        raise InvalidEnum("state", "Please select a valid Australian state")
    return code


def validate_postcode(postcode: Optional[str]) -> str:
    """Strip all whitespace, then require exactly four digits."""
    raw = postcode or ""
    if not raw.strip():
        raise FieldRequired("postcode", "Postcode is required")

    cleaned = re.sub(r"\s+", "", raw)
    if not _POSTCODE_RE.match(cleaned):
        raise InvalidFormat("postcode", "Postcode must be 4 digits")
    return cleaned


def validate_country(country: Optional[str]) -> str:
    value = (country or "").strip()
    if value.lower() != DOMESTIC_COUNTRY.lower():
        raise UnsupportedRegion("country", "Only Australian addresses are supported")
    return DOMESTIC_COUNTRY


def validate_address(address: Address) -> AddressValidationResult:
    """
    Run every field validator and collect all failures.

    Returns a result holding the NormalizedAddress when there are no
    errors, otherwise the per-field errors and no address.
    """
    checks = (
        ("street", validate_street, address.street),
        ("city", validate_city, address.city),
        ("state", validate_state, address.state),
        ("postcode", validate_postcode, address.postcode),
        ("country", validate_country, address.country),
    )

    cleaned = {}
    errors: Dict[str, FieldError] = {}
    for name, validator, value in checks:
        try:
            cleaned[name] = validator(value)
        except FieldError as e:
            errors[name] = e

    if errors:
        logger.debug(f"Address rejected: {sorted(errors)}")
        return AddressValidationResult(errors=errors)

    return AddressValidationResult(address=NormalizedAddress(**cleaned))


# ==================== Items ====================


def validate_item(item: PackageItem, index: int) -> Dict[str, FieldError]:
    """
    Range-check one cart line.

    Overlong names are not an error here; RequestBuilder truncates them
    and reports a warning.
    """
    prefix = f"items.{index}"
    errors: Dict[str, FieldError] = {}

    if not (item.name or "").strip():
        errors[f"{prefix}.name"] = FieldRequired(f"{prefix}.name", "Item name is required")

    if not math.isfinite(item.weight):
        errors[f"{prefix}.weight"] = OutOfRange(f"{prefix}.weight", "Weight must be a number")
    elif item.weight <= 0:
        errors[f"{prefix}.weight"] = OutOfRange(f"{prefix}.weight", "Weight must be greater than 0")
    elif item.weight > MAX_ITEM_WEIGHT_KG:
        errors[f"{prefix}.weight"] = OutOfRange(
            f"{prefix}.weight", f"Weight cannot exceed {MAX_ITEM_WEIGHT_KG}kg"
        )

    dims = item.dimensions.as_tuple()
    if not all(math.isfinite(d) for d in dims):
        errors[f"{prefix}.dimensions"] = OutOfRange(
            f"{prefix}.dimensions", "All dimensions must be numbers"
        )
    elif any(d <= 0 for d in dims):
        errors[f"{prefix}.dimensions"] = OutOfRange(
            f"{prefix}.dimensions", "All dimensions must be greater than 0"
        )
    elif any(d > MAX_ITEM_DIMENSION_CM for d in dims):
        errors[f"{prefix}.dimensions"] = OutOfRange(
            f"{prefix}.dimensions", f"No dimension can exceed {MAX_ITEM_DIMENSION_CM}cm"
        )

    if item.quantity <= 0:
        errors[f"{prefix}.quantity"] = OutOfRange(f"{prefix}.quantity", "Quantity must be greater than 0")
    elif item.quantity > MAX_ITEM_QUANTITY:
        errors[f"{prefix}.quantity"] = OutOfRange(
            f"{prefix}.quantity", f"Quantity cannot exceed {MAX_ITEM_QUANTITY}"
        )

    return errors


def validate_items(items: List[PackageItem]) -> Dict[str, FieldError]:
    if not items:
        return {"items": FieldRequired("items", "At least one item is required")}

    errors: Dict[str, FieldError] = {}
    for index, item in enumerate(items):
        errors.update(validate_item(item, index))
    return errors
