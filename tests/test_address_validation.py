"""
Tests for address and item validation.
"""
import pytest

from unwind_backend.modules.shipping.errors import (
    FieldRequired,
    FieldTooLong,
    InvalidEnum,
    InvalidFormat,
    OutOfRange,
    UnsupportedRegion,
)
from unwind_backend.modules.shipping.carriers.bigpost_models import Locality
from unwind_backend.modules.shipping.types import Address, Dimensions, PackageItem, StateCode
from unwind_backend.modules.shipping.validation import (
    validate_address,
    validate_city,
    validate_items,
    validate_postcode,
    validate_state,
    validate_street,
)


class TestFieldValidators:
    """Test the single-field validators."""

    def test_street_trimmed(self):
        """Test surrounding whitespace is stripped."""
        assert validate_street("  12 Smith St  ") == "12 Smith St"

    def test_street_required(self):
        """Test a blank street is required."""
        with pytest.raises(FieldRequired) as exc_info:
            validate_street("   ")
        assert exc_info.value.message == "Street address is required"
        assert exc_info.value.code == "FIELD_REQUIRED"

    def test_street_length_limit(self):
        """Test 30 characters is the street limit."""
        assert validate_street("x" * 30) == "x" * 30
        with pytest.raises(FieldTooLong) as exc_info:
            validate_street("x" * 31)
        assert exc_info.value.message == "Street address must be 30 characters or less"
        assert exc_info.value.max_length == 30

    def test_city_length_limit(self):
        """Test 30 characters is the city limit."""
        with pytest.raises(FieldTooLong) as exc_info:
            validate_city("Y" * 31)
        assert exc_info.value.message == "City must be 30 characters or less"

    @pytest.mark.parametrize("value", ["VIC", "vic", " Vic ", "Victoria", "victoria"])
    def test_state_code_or_name(self, value):
        """Test states accept a code or full name in any case."""
        assert validate_state(value) == StateCode.VIC

    def test_state_unknown(self):
        """Test an unknown state is rejected."""
        with pytest.raises(InvalidEnum) as exc_info:
            validate_state("XYZ")
        assert exc_info.value.message == "Please select a valid Australian state"

    def test_postcode_whitespace_removed(self):
        """Test inner whitespace is removed from postcodes."""
        assert validate_postcode(" 30 00 ") == "3000"

    @pytest.mark.parametrize("value", ["300", "30000", "3O00", "ABCD"])
    def test_postcode_format(self, value):
        """Test postcodes must be exactly four digits."""
        with pytest.raises(InvalidFormat) as exc_info:
            validate_postcode(value)
        assert exc_info.value.message == "Postcode must be 4 digits"

    def test_postcode_leading_zero_kept(self):
        """Test NT postcodes keep their leading zero."""
        assert validate_postcode("0800") == "0800"


class TestValidateAddress:
    """Test whole-address validation."""

    def test_valid_address_normalized(self):
        """Test a valid address comes back normalized."""
        result = validate_address(
            Address(street=" 12 Smith St ", city="Fitzroy ", state="victoria", postcode="30 65")
        )
        assert result.is_valid
        assert result.address.street == "12 Smith St"
        assert result.address.city == "Fitzroy"
        assert result.address.state == StateCode.VIC
        assert result.address.postcode == "3065"
        assert result.address.country == "Australia"

    def test_all_errors_collected(self):
        """Test every failing field is reported at once."""
        result = validate_address(
            Address(street="1 Very Long Street Name That Goes On", city="", state="XYZ", postcode="12")
        )
        assert not result.is_valid
        assert result.address is None
        assert set(result.errors) == {"street", "city", "state", "postcode"}
        assert result.messages()["state"] == "Please select a valid Australian state"

    def test_street_of_31_characters_rejected(self):
        """Test one character over the limit fails."""
        result = validate_address(Address(street="x" * 31, city="Fitzroy", state="VIC", postcode="3065"))
        assert set(result.errors) == {"street"}
        assert result.messages()["street"] == "Street address must be 30 characters or less"

    def test_foreign_country_rejected(self):
        """Test addresses outside Australia are unsupported."""
        result = validate_address(
            Address(street="1 Queen St", city="Auckland", state="VIC", postcode="1010", country="New Zealand")
        )
        assert isinstance(result.errors["country"], UnsupportedRegion)


class TestValidateItems:
    """Test cart item range checks."""

    def test_empty_cart(self):
        """Test an empty cart is an error."""
        errors = validate_items([])
        assert list(errors) == ["items"]
        assert errors["items"].message == "At least one item is required"

    def test_valid_items(self, small_item, heavy_item):
        """Test ordinary items pass."""
        assert validate_items([small_item, heavy_item]) == {}

    def test_errors_keyed_by_index(self, small_item):
        """Test item errors are keyed by position."""
        bad = PackageItem(name="", weight=0, dimensions=Dimensions(10, 250, 10), quantity=0)
        errors = validate_items([small_item, bad])
        assert set(errors) == {"items.1.name", "items.1.weight", "items.1.dimensions", "items.1.quantity"}
        assert all(isinstance(errors[k], OutOfRange) for k in errors if k != "items.1.name")

    def test_long_name_is_not_an_error(self):
        """Test long names are left for truncation."""
        item = PackageItem(name="N" * 80, weight=2.0, dimensions=Dimensions(10, 10, 10))
        assert validate_items([item]) == {}


class TestItemLimits:
    """Test item range boundaries."""

    @staticmethod
    def item(weight=5.0, dims=(40, 40, 10), quantity=1):
        return PackageItem(name="Planter", weight=weight, dimensions=Dimensions(*dims), quantity=quantity)

    def test_upper_bounds_accepted(self):
        """Test 1000kg, 200cm and quantity 100 are all allowed."""
        assert validate_items([self.item(weight=1000, dims=(200, 200, 200), quantity=100)]) == {}

    @pytest.mark.parametrize(
        "kwargs,field",
        [
            ({"weight": 1000.01}, "items.0.weight"),
            ({"weight": -2}, "items.0.weight"),
            ({"dims": (200.5, 10, 10)}, "items.0.dimensions"),
            ({"dims": (10, 0, 10)}, "items.0.dimensions"),
            ({"quantity": 101}, "items.0.quantity"),
        ],
    )
    def test_out_of_range(self, kwargs, field):
        """Test values past either limit are rejected."""
        errors = validate_items([self.item(**kwargs)])
        assert list(errors) == [field]
        assert isinstance(errors[field], OutOfRange)

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_weight(self, value):
        """Test NaN and infinite weights never pass the range check."""
        errors = validate_items([self.item(weight=value)])
        assert isinstance(errors["items.0.weight"], OutOfRange)

    @pytest.mark.parametrize("value", [float("nan"), float("inf")])
    def test_non_finite_dimension(self, value):
        """Test NaN and infinite dimensions never pass the range check."""
        errors = validate_items([self.item(dims=(value, 10, 10))])
        assert isinstance(errors["items.0.dimensions"], OutOfRange)


class TestPostcodeDigits:
    """Only ASCII digits make a postcode."""

    @pytest.mark.parametrize("value", ["３０００", "٣٠٠٠", "३०००"])
    def test_non_ascii_digits_rejected(self, value):
        """Test fullwidth and other script digits are invalid."""
        with pytest.raises(InvalidFormat):
            validate_postcode(value)

    def test_wire_locality_rejects_non_ascii_digits(self):
        """Test the carrier locality model applies the same rule."""
        with pytest.raises(ValueError):
            Locality(suburb="Melbourne", postcode="３０００", state=StateCode.VIC)
