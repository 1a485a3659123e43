"""
Shared fixtures for the shipping tests.
"""
import json
import os

# Set test environment before the settings module is imported
os.environ["ENVIRONMENT"] = "development"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["FEATURE_BIG_POST_SHIPPING"] = "false"
os.environ["BIGPOST_API_KEY"] = ""

import httpx
import pytest

from unwind_backend.core.bigpost_rate_limiter import SlidingWindowConfig, SlidingWindowRateLimiter
from unwind_backend.modules.shipping.carriers.bigpost import BigPostClient, BigPostConfig
from unwind_backend.modules.shipping.types import (
    Address,
    Dimensions,
    OriginLocation,
    PackageItem,
    StateCode,
)

TEST_BASE_URL = "https://bigpost.test"


def make_client(handler, max_retries=2, rate_limiter=None, timeout=30.0):
    """BigPostClient wired to an httpx MockTransport; no backoff delay."""
    config = BigPostConfig(
        api_key="test-key",
        base_url=TEST_BASE_URL,
        timeout=timeout,
        max_retries=max_retries,
        backoff_base=0.0,
    )
    return BigPostClient(
        config,
        rate_limiter=rate_limiter or SlidingWindowRateLimiter(SlidingWindowConfig()),
        transport=httpx.MockTransport(handler),
    )


def json_response(status_code, body):
    return httpx.Response(status_code, content=json.dumps(body).encode(), headers={"Content-Type": "application/json"})


def quote_body(*rows):
    return {"Success": True, "RequestId": "req-1", "Quotes": list(rows)}


def quote_row(price, service_name="Road Express", carrier_id=7, days=2, service_code="RE"):
    return {
        "ServiceCode": service_code,
        "ServiceName": service_name,
        "Price": price,
        "EstimatedDeliveryDays": days,
        "CarrierId": carrier_id,
        "CarrierName": "Hunter Express",
        "AuthorityToLeave": True,
    }


@pytest.fixture
def origin():
    return OriginLocation(
        name="Unwind Designs",
        address="Export Drive",
        suburb="Brooklyn",
        postcode="3012",
        state=StateCode.VIC,
    )


@pytest.fixture
def address():
    return Address(street="12 Smith Street", city="Fitzroy", state="VIC", postcode="3065")


@pytest.fixture
def small_item():
    return PackageItem(name="Cushion Cover", weight=5.0, dimensions=Dimensions(40, 40, 10))


@pytest.fixture
def heavy_item():
    return PackageItem(name="Outdoor Daybed", weight=65.0, dimensions=Dimensions(190, 90, 60))
