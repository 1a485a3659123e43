"""
Tests for quote orchestration.
"""
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from conftest import json_response, make_client, quote_body, quote_row
from unwind_backend.modules.shipping.carriers.bigpost_models import GetQuoteResponse
from unwind_backend.modules.shipping.errors import (
    CarrierAuthenticationError,
    CarrierTransportError,
    CarrierValidationError,
    NoOptionsAvailable,
    QuoteValidationError,
)
from unwind_backend.modules.shipping.fallback import FallbackEstimator
from unwind_backend.modules.shipping.types import (
    Address,
    Dimensions,
    PackageItem,
    QuoteSource,
)
from unwind_backend.services.quote_service import QuoteService


def mock_carrier(response=None, error=None):
    carrier = MagicMock()
    if error is not None:
        carrier.get_quote = AsyncMock(side_effect=error)
    else:
        carrier.get_quote = AsyncMock(return_value=response)
    return carrier


class TestValidation:
    """Invalid input never reaches the carrier or the fallback."""

    @pytest.mark.asyncio
    async def test_invalid_address_raises(self, origin, small_item):
        """Test an invalid address never reaches the carrier."""
        carrier = mock_carrier(GetQuoteResponse.model_validate(quote_body(quote_row(20.0))))
        service = QuoteService(carrier, FallbackEstimator(), origin)

        with pytest.raises(QuoteValidationError) as exc_info:
            await service.get_quotes(
                Address(street="x" * 31, city="Fitzroy", state="VIC", postcode="3065"), [small_item], 100.0
            )

        assert exc_info.value.field_messages() == {
            "street": "Street address must be 30 characters or less"
        }
        carrier.get_quote.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_cart_raises(self, origin, address):
        """Test an empty cart is a validation error."""
        service = QuoteService(None, FallbackEstimator(), origin)
        with pytest.raises(QuoteValidationError) as exc_info:
            await service.get_quotes(address, [], 0.0)
        assert "items" in exc_info.value.errors


class TestCarrierPath:
    """Test quotes from BigPost."""

    @pytest.mark.asyncio
    async def test_carrier_quotes_ranked(self, origin, address, small_item):
        """Test carrier quotes come back ranked."""
        response = GetQuoteResponse.model_validate(
            quote_body(quote_row(31.0, "Express"), quote_row(18.0, "Economy"))
        )
        service = QuoteService(mock_carrier(response), FallbackEstimator(), origin)

        result = await service.get_quotes(address, [small_item], 100.0)

        assert result.source == QuoteSource.CARRIER
        assert not result.is_fallback
        assert [q.price for q in result.quotes] == [18.0, 31.0]
        assert all(q.source == QuoteSource.CARRIER for q in result.quotes)

    @pytest.mark.asyncio
    async def test_truncation_warning_surfaced(self, origin, address):
        """Test name truncation warnings reach the result."""
        item = PackageItem(name="L" * 60, weight=3.0, dimensions=Dimensions(30, 30, 30))
        response = GetQuoteResponse.model_validate(quote_body(quote_row(18.0)))
        service = QuoteService(mock_carrier(response), FallbackEstimator(), origin)

        result = await service.get_quotes(address, [item], 100.0)

        assert len(result.warnings) == 1
        assert result.warnings[0].startswith("Item name truncated from 60 to 50 characters")


class TestFallbackPath:
    """Any carrier failure yields fallback quotes only."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            CarrierTransportError("Request timed out after 30s"),
            CarrierAuthenticationError(),
            CarrierValidationError("Validation error: bad suburb", ["bad suburb"]),
        ],
    )
    async def test_carrier_error_falls_back(self, origin, address, small_item, error):
        """Test each carrier error falls back."""
        service = QuoteService(mock_carrier(error=error), FallbackEstimator(), origin)

        result = await service.get_quotes(address, [small_item], 100.0)

        assert result.is_fallback
        assert all(q.source == QuoteSource.FALLBACK for q in result.quotes)
        assert (result.quotes[0].service, result.quotes[0].price, result.quotes[0].delivery_days) == (
            "Standard Shipping",
            12.0,
            3,
        )

    @pytest.mark.asyncio
    async def test_unsuccessful_response_falls_back(self, origin, address, small_item):
        """Test an unsuccessful response falls back."""
        response = GetQuoteResponse(success=False, error_message="No service")
        service = QuoteService(mock_carrier(response), FallbackEstimator(), origin)

        result = await service.get_quotes(address, [small_item], 100.0)
        assert result.is_fallback

    @pytest.mark.asyncio
    async def test_carrier_disabled_uses_fallback(self, origin, address, small_item):
        """Test the fallback is used when BigPost is off."""
        service = QuoteService(None, FallbackEstimator(), origin)
        result = await service.get_quotes(address, [small_item], 600.0)

        assert result.is_fallback
        assert result.quotes[0].service == "Free Shipping"

    @pytest.mark.asyncio
    async def test_retries_exhausted_then_fallback(self, origin, address, small_item):
        """Test fallback after every retry fails."""
        calls = []

        def handler(request):
            calls.append(request)
            return json_response(503, {"ErrorMessage": "Unavailable"})

        async with make_client(handler, max_retries=2) as client:
            service = QuoteService(client, FallbackEstimator(), origin)
            result = await service.get_quotes(address, [small_item], 100.0)

        assert len(calls) == 3
        assert result.is_fallback
        assert result.quotes[0].price == 12.0

    @pytest.mark.asyncio
    async def test_structured_carrier_rejection_falls_back(self, origin, address, small_item):
        """Test a 422 with field objects still ends in fallback quotes."""
        def handler(request):
            return json_response(422, {"ValidationErrors": [{"Field": "Suburb", "Message": "bad"}]})

        async with make_client(handler) as client:
            result = await QuoteService(client, FallbackEstimator(), origin).get_quotes(address, [small_item], 100.0)

        assert result.is_fallback
        assert all(q.source == QuoteSource.FALLBACK for q in result.quotes)

    @pytest.mark.asyncio
    async def test_no_options_available(self, origin, address, small_item):
        """Test no zones means no options."""
        service = QuoteService(None, FallbackEstimator(zones=()), origin)
        with pytest.raises(NoOptionsAvailable):
            await service.get_quotes(address, [small_item], 100.0)


class TestCheckoutScenario:
    """Melbourne CBD, one 5kg carton, $100 cart."""

    ADDRESS = Address(street="1 Test St", city="Melbourne", state="VIC", postcode="3000", country="Australia")

    @pytest.fixture
    def items(self):
        return [PackageItem(name="Cushion", weight=5.0, dimensions=Dimensions(30, 20, 10), quantity=1)]

    @pytest.mark.asyncio
    async def test_single_carrier_quote(self, origin, items):
        """Test a single carrier quote is returned as is."""
        response = GetQuoteResponse.model_validate(quote_body(quote_row(15.50, "Standard", days=3)))
        service = QuoteService(mock_carrier(response), FallbackEstimator(), origin)

        result = await service.get_quotes(self.ADDRESS, items, 100.0)

        assert len(result.quotes) == 1
        assert result.quotes[0].source == QuoteSource.CARRIER
        assert result.quotes[0].price == 15.50

    @pytest.mark.asyncio
    async def test_transport_failure_gives_metro_rate(self, origin, items):
        """Test an unreachable carrier gives the metro rate."""
        def handler(request):
            raise httpx.ConnectError("connection refused")

        async with make_client(handler, max_retries=2) as client:
            result = await QuoteService(client, FallbackEstimator(), origin).get_quotes(self.ADDRESS, items, 100.0)

        cheapest = result.quotes[0]
        assert cheapest.source == QuoteSource.FALLBACK
        assert cheapest.price == 12.0
        assert cheapest.delivery_days == 3
