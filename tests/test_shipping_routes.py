"""
Tests for shipping API routes.
"""
import json

import httpx
import pytest
from slowapi.middleware import SlowAPIMiddleware

from conftest import json_response, make_client, quote_body, quote_row
from unwind_backend.api.deps import get_bigpost_client, get_quote_service
from unwind_backend.core.rate_limit import limiter
from unwind_backend.main import create_app
from unwind_backend.modules.shipping.fallback import FallbackEstimator
from unwind_backend.services.quote_service import QuoteService

QUOTE_PAYLOAD = {
    "deliveryAddress": {"street": "12 Smith Street", "city": "Fitzroy", "state": "VIC", "postcode": "3065"},
    "items": [{"id": "sku-1", "name": "Cushion Cover", "quantity": 1, "weight": 5, "dimensions": {"length": 40, "width": 40, "height": 10}}],
    "totalValue": 100,
}


@pytest.fixture
def app():
    return create_app()


def api_client(app):
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


class TestHealth:
    """Test the health and wiring of the app."""

    @pytest.mark.asyncio
    async def test_health(self, app):
        """Test the health check reports the carrier as off."""
        async with api_client(app) as client:
            response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["bigpost_enabled"] is False

    def test_default_rate_limit_middleware_installed(self, app):
        """Test routes without their own limit still get the default one."""
        assert SlowAPIMiddleware in [m.cls for m in app.user_middleware]
        assert app.state.limiter is limiter


class TestQuoteEndpoint:
    """Test POST /api/shipping/quote."""

    @pytest.mark.asyncio
    async def test_fallback_quotes(self, app):
        """Test fallback quotes when BigPost is off."""
        async with api_client(app) as client:
            response = await client.post("/api/shipping/quote", json=QUOTE_PAYLOAD)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["fallback"] is True
        cheapest = data["quotes"][0]
        assert cheapest["service"] == "Standard Shipping"
        assert cheapest["price"] == 12.0
        assert cheapest["deliveryDays"] == 3
        assert cheapest["deliveryLabel"] == "3 business days"
        assert cheapest["source"] == "fallback"
        assert "estimatedDeliveryDate" in cheapest

    @pytest.mark.asyncio
    async def test_carrier_quotes(self, app, origin):
        """Test carrier quotes through the endpoint."""
        def handler(request):
            return json_response(200, quote_body(quote_row(21.0), quote_row(16.5, "Economy")))

        carrier = make_client(handler)
        app.dependency_overrides[get_quote_service] = lambda: QuoteService(carrier, FallbackEstimator(), origin)

        async with api_client(app) as client:
            response = await client.post("/api/shipping/quote", json=QUOTE_PAYLOAD)
        await carrier.close()

        data = response.json()
        assert data["fallback"] is False
        assert [q["price"] for q in data["quotes"]] == [16.5, 21.0]
        assert data["quotes"][0]["carrierId"] == 7
        assert data["quotes"][0]["source"] == "carrier"

    @pytest.mark.asyncio
    async def test_validation_errors(self, app):
        """Test field errors come back as 422."""
        payload = dict(QUOTE_PAYLOAD, deliveryAddress={"street": "", "city": "Fitzroy", "state": "XYZ", "postcode": "30"})
        async with api_client(app) as client:
            response = await client.post("/api/shipping/quote", json=payload)

        assert response.status_code == 422
        data = response.json()
        assert data["success"] is False
        assert data["fields"] == {
            "street": "Street address is required",
            "state": "Please select a valid Australian state",
            "postcode": "Postcode must be 4 digits",
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["weight", "length"])
    async def test_non_finite_number_rejected(self, app, field):
        """Test a NaN weight or dimension is a 422, not a server error."""
        item = dict(QUOTE_PAYLOAD["items"][0], dimensions=dict(QUOTE_PAYLOAD["items"][0]["dimensions"]))
        if field == "weight":
            item["weight"] = float("nan")
        else:
            item["dimensions"]["length"] = float("nan")
        body = json.dumps(dict(QUOTE_PAYLOAD, items=[item]))
        assert "NaN" in body

        async with api_client(app) as client:
            response = await client.post(
                "/api/shipping/quote", content=body, headers={"Content-Type": "application/json"}
            )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_no_options(self, app, origin):
        """Test no options is a 404."""
        app.dependency_overrides[get_quote_service] = lambda: QuoteService(None, FallbackEstimator(zones=()), origin)

        async with api_client(app) as client:
            response = await client.post("/api/shipping/quote", json=QUOTE_PAYLOAD)

        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "error": "No shipping options are available for this address",
        }


class TestAddressSearchEndpoint:
    """Test GET /api/address-search."""

    @pytest.mark.asyncio
    async def test_fallback_results(self, app):
        """Test address search from the static list."""
        async with api_client(app) as client:
            response = await client.get("/api/address-search", params={"q": "geel"})

        data = response.json()
        assert response.status_code == 200
        assert data["fallback"] is True
        assert data["results"][0]["value"] == "Geelong, 3220, VIC"

    @pytest.mark.asyncio
    async def test_short_query(self, app):
        """Test a short query is a 400."""
        async with api_client(app) as client:
            response = await client.get("/api/address-search", params={"q": "g"})

        assert response.status_code == 400
        assert response.json()["results"] == []


class TestBookingEndpoints:
    """Test booking, job status and depot endpoints."""

    @pytest.mark.asyncio
    async def test_book_job_without_carrier(self, app):
        """Test booking without BigPost is refused."""
        payload = {
            "orderId": "ORD-1001",
            "contactName": "Sam Taylor",
            "buyerEmail": "sam@example.com",
            "selectedQuote": {"carrierId": 7, "serviceCode": "RE", "price": 21.0, "deliveryDays": 2},
            "deliveryAddress": QUOTE_PAYLOAD["deliveryAddress"],
            "items": QUOTE_PAYLOAD["items"],
        }
        async with api_client(app) as client:
            response = await client.post("/api/shipping/book-job", json=payload)

        assert response.status_code == 400
        assert response.json()["code"] == "CARRIER_DISABLED"

    @pytest.mark.asyncio
    async def test_job_status_without_carrier(self, app):
        """Test job status without BigPost is a 503."""
        async with api_client(app) as client:
            response = await client.get("/api/shipping/jobs/9001/status")
        assert response.status_code == 503

    @pytest.mark.asyncio
    async def test_job_status(self, app):
        """Test job status through the endpoint."""
        def handler(request):
            return json_response(
                200,
                {
                    "Success": True,
                    "Results": [
                        {
                            "JobId": 9001,
                            "CurrentStatus": "Delivered",
                            "StatusHistory": [
                                {"Timestamp": "2026-10-01T09:00:00", "Status": "Booked"},
                                {"Timestamp": "2026-10-03T14:10:00", "Status": "Delivered", "Location": "Fitzroy"},
                            ],
                        }
                    ],
                },
            )

        carrier = make_client(handler)
        app.dependency_overrides[get_bigpost_client] = lambda: carrier

        async with api_client(app) as client:
            response = await client.get("/api/shipping/jobs/9001/status")
        await carrier.close()

        data = response.json()
        assert response.status_code == 200
        assert data["jobId"] == 9001
        assert data["currentStatus"] == "Delivered"
        assert [e["status"] for e in data["history"]] == ["Booked", "Delivered"]

    @pytest.mark.asyncio
    async def test_depots(self, app):
        """Test depot lookup through the endpoint."""
        def handler(request):
            return json_response(
                200,
                {
                    "Success": True,
                    "Results": [
                        {
                            "Id": 3,
                            "Name": "Brooklyn Depot",
                            "Address": "1 Export Drive",
                            "Suburb": "Brooklyn",
                            "Postcode": "3012",
                            "State": "VIC",
                            "DistanceKm": 8.2,
                        }
                    ],
                },
            )

        carrier = make_client(handler)
        app.dependency_overrides[get_bigpost_client] = lambda: carrier

        async with api_client(app) as client:
            response = await client.get(
                "/api/shipping/depots", params={"suburb": "Fitzroy", "postcode": "3065", "state": "VIC"}
            )
        await carrier.close()

        assert response.status_code == 200
        depot = response.json()["depots"][0]
        assert depot["name"] == "Brooklyn Depot"
        assert depot["distanceKm"] == 8.2
