"""
BigPost API Client

Implements the BigPost freight API used for checkout quotes and bookings:
- Quotes (getquote)
- Job booking (createjob)
- Suburb search for address autocomplete
- Closest depot lookup
- Job status (current and full history)

Every call goes through one transport:
- Bearer authentication with JSON bodies
- Per-attempt timeout; timeouts and network failures are transport errors
- Local sliding-window rate limit checked before each attempt
- Sequential retries with exponential backoff for retryable errors only
- 401 and 422 fail immediately without using the retry budget
"""
import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from unwind_backend.core.bigpost_rate_limiter import SlidingWindowConfig, SlidingWindowRateLimiter
from unwind_backend.modules.shipping.carriers.bigpost_models import (
    CreateJobRequest,
    CreateJobResponse,
    DepotSearchRequest,
    DepotSearchResponse,
    GetQuoteRequest,
    GetQuoteResponse,
    JobStatusRequest,
    JobStatusResponse,
    QuoteOption,
    SuburbSearchResponse,
)
from unwind_backend.modules.shipping.errors import (
    CarrierAuthenticationError,
    CarrierError,
    CarrierRateLimited,
    CarrierTransportError,
    CarrierValidationError,
)
from unwind_backend.modules.shipping.types import Quote, QuoteSource, StateCode

logger = logging.getLogger(__name__)

BIGPOST_PRODUCTION_URL = "https://app.bigpost.com.au"

# API endpoints
GET_QUOTE_PATH = "/api/getquote"
CREATE_JOB_PATH = "/api/createjob"
SEARCH_SUBURBS_PATH = "/api/searchsuburbs"
CLOSEST_DEPOTS_PATH = "/api/closestdepots"
JOB_STATUS_HISTORY_PATH = "/api/jobstatushistory"
CURRENT_JOB_STATUS_PATH = "/api/currentjobstatus"

CARRIER_NAME = "BigPost"
DEFAULT_SERVICE_NAME = "Standard Shipping"
DEFAULT_DELIVERY_DAYS = 3


@dataclass
class BigPostConfig:
    """Connection settings for one BigPost account."""
    api_key: str
    base_url: str = BIGPOST_PRODUCTION_URL
    timeout: float = 30.0
    max_retries: int = 2
    backoff_base: float = 1.0
    user_agent: str = "Unwind-Designs/1.0"

    @classmethod
    def from_settings(cls, settings) -> "BigPostConfig":
        return cls(
            api_key=settings.BIGPOST_API_KEY,
            base_url=settings.BIGPOST_BASE_URL.rstrip("/"),
            timeout=settings.BIGPOST_TIMEOUT_SECONDS,
            max_retries=settings.BIGPOST_MAX_RETRIES,
            backoff_base=settings.BIGPOST_BACKOFF_BASE_SECONDS,
            user_agent=settings.BIGPOST_USER_AGENT,
        )

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }


def _log_payload(label: str, payload: Any) -> None:
    """Debug-log a payload. Unserializable payloads are reported, never raised."""
    if not logger.isEnabledFor(logging.DEBUG):
        return
    try:
        logger.debug(f"[BigPost] {label}: {json.dumps(payload, default=str)[:2000]}")
    except (TypeError, ValueError) as e:
        logger.debug(f"[BigPost] {label}: <unloggable payload: {e}>")


class BigPostClient:
    """
    Async client for the BigPost API.

    Usage:
        async with BigPostClient(BigPostConfig.from_settings(settings)) as client:
            response = await client.get_quote(request)

    Share one `rate_limiter` between clients that use the same API key.
    """

    def __init__(
        self,
        config: BigPostConfig,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.rate_limiter = rate_limiter or SlidingWindowRateLimiter(SlidingWindowConfig())
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        await self._get_http_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                headers=self.config.headers,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    def _calculate_backoff(self, attempt: int) -> float:
        """Delay after failed attempt number `attempt` (1-based): base * 2^attempt."""
        return self.config.backoff_base * (2 ** attempt)

    # ==================== Transport ====================

    def _classify_error(self, response: httpx.Response) -> CarrierError:
        try:
            error_data = response.json()
        except ValueError:
            error_data = {"raw": response.text[:500]}
        if not isinstance(error_data, dict):
            error_data = {}

        status = response.status_code
        message = str(error_data.get("ErrorMessage") or f"HTTP {status}: {response.reason_phrase}")

        if status == 401:
            return CarrierAuthenticationError()
        if status == 422:
            raw_errors = error_data.get("ValidationErrors")
            if isinstance(raw_errors, list) and raw_errors:
                validation_errors = [_validation_error_text(e) for e in raw_errors]
            else:
                validation_errors = [message]
            return CarrierValidationError(
                f"Validation error: {', '.join(validation_errors)}",
                validation_errors=validation_errors,
            )
        if status == 429:
            return CarrierRateLimited(message)
        return CarrierTransportError(message, status_code=status)

    async def _send(
        self,
        method: str,
        path: str,
        data: Optional[Dict] = None,
        params: Optional[Dict] = None,
    ) -> Dict:
        """One attempt: send, classify failures, decode JSON."""
        client = await self._get_http_client()
        _log_payload(f"{method} {path} request", data if data is not None else params)

        try:
            response = await client.request(method, path, json=data, params=params)
        except httpx.TimeoutException as e:
            raise CarrierTransportError(
                f"Request timed out after {self.config.timeout:.0f}s"
            ) from e
        except httpx.RequestError as e:
            raise CarrierTransportError(f"Network error: {e}") from e

        logger.debug(f"[BigPost] {method} {path} -> {response.status_code}")

        if not response.is_success:
            raise self._classify_error(response)

        try:
            body = response.json()
        except ValueError as e:
            raise CarrierTransportError(
                "BigPost returned a non-JSON response", status_code=response.status_code
            ) from e

        _log_payload(f"{method} {path} response", body)
        return body

    async def _request(
        self,
        method: str,
        path: str,
        data: Optional[Dict] = None,
        params: Optional[Dict] = None,
    ) -> Dict:
        """Execute with rate limiting and retries. Attempts never overlap."""
        total_attempts = self.config.max_retries + 1
        last_error: Optional[CarrierError] = None

        for attempt in range(1, total_attempts + 1):
            if not self.rate_limiter.try_acquire():
                raise CarrierRateLimited(
                    "Rate limit exceeded. Please try again later.", local=True
                )

            try:
                return await self._send(method, path, data=data, params=params)
            except CarrierError as e:
                if not e.retryable:
                    logger.error(
                        f"[BigPost] {method} {path}: {type(e).__name__} "
                        f"({e.status_code}), not retrying: {e.message}"
                    )
                    raise
                last_error = e

                if attempt < total_attempts:
                    delay = self._calculate_backoff(attempt)
                    logger.warning(
                        f"[BigPost] {method} {path}: {e.message}, "
                        f"retrying in {delay:.1f}s (attempt {attempt}/{total_attempts})"
                    )
                    await asyncio.sleep(delay)

        logger.error(f"[BigPost] {method} {path}: Request failed after {total_attempts} attempts")
        last_error.details["attempts"] = total_attempts
        raise last_error

    # ==================== Quotes ====================

    async def get_quote(self, request: GetQuoteRequest) -> GetQuoteResponse:
        data = await self._request("POST", GET_QUOTE_PATH, data=request.to_wire())
        response = _parse(GetQuoteResponse, data)
        logger.info(
            f"[BigPost] Quote {response.request_id or '-'}: "
            f"success={response.success}, options={len(response.quotes)}"
        )
        return response

    # ==================== Jobs ====================

    async def create_job(self, request: CreateJobRequest) -> CreateJobResponse:
        data = await self._request("POST", CREATE_JOB_PATH, data=request.to_wire())
        return _parse(CreateJobResponse, data)

    async def get_job_status_history(self, job_ids: List[int]) -> JobStatusResponse:
        body = JobStatusRequest(job_ids=job_ids).to_wire()
        data = await self._request("POST", JOB_STATUS_HISTORY_PATH, data=body)
        return _parse(JobStatusResponse, data)

    async def get_current_job_status(self, job_ids: List[int]) -> JobStatusResponse:
        body = JobStatusRequest(job_ids=job_ids).to_wire()
        data = await self._request("POST", CURRENT_JOB_STATUS_PATH, data=body)
        return _parse(JobStatusResponse, data)

    # ==================== Lookups ====================

    async def search_suburbs(self, query: str, state: Optional[StateCode] = None) -> SuburbSearchResponse:
        params = {"query": query}
        if state:
            params["state"] = StateCode(state).value
        data = await self._request("GET", SEARCH_SUBURBS_PATH, params=params)
        return _parse(SuburbSearchResponse, data)

    async def find_closest_depots(self, request: DepotSearchRequest) -> DepotSearchResponse:
        data = await self._request("POST", CLOSEST_DEPOTS_PATH, data=request.to_wire())
        return _parse(DepotSearchResponse, data)


def _validation_error_text(error: Any) -> str:
    """BigPost sends plain strings or {Field, Message} objects."""
    if isinstance(error, dict):
        field = error.get("Field") or error.get("PropertyName")
        text = error.get("Message") or error.get("ErrorMessage") or error
        return f"{field}: {text}" if field else str(text)
    return str(error)


def _parse(model, data: Any):
    """Validate a response body; shape mismatches count as transport failures."""
    try:
        return model.model_validate(data)
    except ValueError as e:
        raise CarrierTransportError(f"Unexpected {model.__name__} shape: {e}") from e


# ==================== Normalization ====================


def normalize_quote(option: QuoteOption) -> Optional[Quote]:
    """Map one BigPost quote row to a Quote, or None if it has no usable price."""
    if option.price is None or option.price < 0:
        return None

    carrier = option.carrier_name or CARRIER_NAME
    days = option.estimated_delivery_days
    return Quote(
        service=(option.service_name or option.service_code or DEFAULT_SERVICE_NAME).strip(),
        price=round(option.price, 2),
        delivery_days=max(0, days) if days is not None else DEFAULT_DELIVERY_DAYS,
        description=option.description or f"{carrier} delivery",
        carrier=carrier,
        restrictions=tuple(option.restrictions),
        source=QuoteSource.CARRIER,
        carrier_id=option.carrier_id,
        service_code=option.service_code,
        authority_to_leave=bool(option.authority_to_leave),
    )


def quotes_from_response(response: GetQuoteResponse) -> List[Quote]:
    """Usable quotes ranked by price, cheapest first. Empty when BigPost reports failure."""
    if not response.success:
        if response.error_message:
            logger.warning(f"[BigPost] Quote unsuccessful: {response.error_message}")
        return []

    quotes = []
    for option in response.quotes:
        quote = normalize_quote(option)
        if quote is None:
            logger.warning(f"[BigPost] Skipping quote row without a usable price: {option.service_code}")
            continue
        quotes.append(quote)

    return sorted(quotes, key=lambda q: q.price)
