"""
Unwind Designs Shipping Backend
FastAPI application entry point

- Checkout shipping quotes (BigPost, with a local fallback estimator)
- Address autocomplete
- BigPost job booking, job status and depot lookup
- Rate limiting with SlowAPI
- Error sanitization middleware
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from unwind_backend import __version__
from unwind_backend.api.routes import shipping
from unwind_backend.core.bigpost_rate_limiter import SlidingWindowConfig, SlidingWindowRateLimiter
from unwind_backend.core.config import settings
from unwind_backend.core.error_handler import ErrorSanitizationMiddleware
from unwind_backend.core.rate_limit import limiter, rate_limit_exceeded_handler
from unwind_backend.modules.shipping.carriers.bigpost import BigPostClient, BigPostConfig
from unwind_backend.modules.shipping.fallback import FallbackEstimator
from unwind_backend.modules.shipping.types import OriginLocation
from unwind_backend.services.address_search import AddressSearchService
from unwind_backend.services.job_booking import JobBookingService
from unwind_backend.services.quote_service import QuoteService

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield

    # Close the BigPost HTTP client to prevent connection leaks
    client = getattr(app.state, "bigpost_client", None)
    if client is not None:
        await client.close()
        logger.info("BigPost HTTP client closed")


def build_services(app: FastAPI) -> None:
    """Wire the shipping services onto `app.state`."""
    client = None
    if settings.bigpost_enabled:
        rate_limiter = SlidingWindowRateLimiter(SlidingWindowConfig.from_settings(settings))
        client = BigPostClient(BigPostConfig.from_settings(settings), rate_limiter=rate_limiter)
        logger.info(f"BigPost shipping ENABLED ({settings.BIGPOST_BASE_URL})")
    else:
        logger.info("BigPost shipping DISABLED - quotes come from the fallback estimator")

    origin = OriginLocation.from_settings(settings)
    quote_service = QuoteService(
        carrier=client,
        fallback=FallbackEstimator.from_settings(settings),
        origin=origin,
    )

    app.state.bigpost_client = client
    app.state.quote_service = quote_service
    app.state.address_search_service = AddressSearchService(carrier=client)
    app.state.job_booking_service = JobBookingService(
        carrier=client,
        quote_service=quote_service,
        origin=origin,
        source_type=settings.BIGPOST_SOURCE_TYPE,
    )


def create_app() -> FastAPI:
    app = FastAPI(
        lifespan=lifespan,
        title="Unwind Designs Shipping API",
        description="""
## Unwind Designs Shipping API

Shipping quotes and bookings for the Unwind Designs checkout.

### Quotes
BigPost quotes when the carrier is reachable; otherwise zone-based estimates
flagged with `fallback: true`. A response never mixes the two.

### Rate Limits
- Quotes: 30 requests/minute
- General: 100 requests/minute
        """,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {"name": "Health", "description": "Health check endpoints"},
            {"name": "Shipping", "description": "Quotes, address search, bookings and depots"},
        ],
    )

    build_services(app)

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    # Applies RATE_LIMIT_DEFAULT to routes without their own @limiter.limit
    app.add_middleware(SlowAPIMiddleware)

    # Error sanitization (catches unhandled exceptions)
    app.add_middleware(ErrorSanitizationMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(shipping.router, prefix="/api", tags=["Shipping"])

    @app.get("/", tags=["Health"])
    async def root():
        return {
            "message": settings.APP_NAME,
            "version": __version__,
            "status": "operational",
        }

    @app.get("/health", tags=["Health"])
    async def health_check():
        client = app.state.bigpost_client
        return {
            "status": "healthy",
            "bigpost_enabled": client is not None,
            "bigpost_rate_limit": client.rate_limiter.get_status() if client else None,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


app = create_app()
