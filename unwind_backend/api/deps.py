"""
API dependencies

Services are built once per application in `create_app` and kept on
`app.state`; routes receive them through these providers so tests can swap
them with `app.dependency_overrides`.
"""
from typing import Optional

from fastapi import Request

from unwind_backend.modules.shipping.carriers.bigpost import BigPostClient
from unwind_backend.services.address_search import AddressSearchService
from unwind_backend.services.job_booking import JobBookingService
from unwind_backend.services.quote_service import QuoteService


def get_quote_service(request: Request) -> QuoteService:
    return request.app.state.quote_service


def get_address_search_service(request: Request) -> AddressSearchService:
    return request.app.state.address_search_service


def get_job_booking_service(request: Request) -> JobBookingService:
    return request.app.state.job_booking_service


def get_bigpost_client(request: Request) -> Optional[BigPostClient]:
    return request.app.state.bigpost_client
