"""
Application configuration

All carrier credentials, limits and thresholds come from the environment
(or a local .env file). Defaults are safe for production:
- DEBUG defaults to False
- BigPost shipping is disabled until FEATURE_BIG_POST_SHIPPING and
  BIGPOST_API_KEY are both set; quotes then come from the local estimator
"""
import json
import logging
from typing import List
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

# Default CORS origins
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "https://unwinddesigns.com.au",
    "https://www.unwinddesigns.com.au",
]


class Settings(BaseSettings):
    # App - defaults are PRODUCTION safe
    APP_NAME: str = "Unwind Designs Shipping"
    DEBUG: bool = False
    ENVIRONMENT: str = "production"
    LOG_LEVEL: str = "INFO"

    # CORS - accepts JSON array or comma-separated string
    CORS_ORIGINS: List[str] = DEFAULT_CORS_ORIGINS

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            if not v or v.strip() == "":
                return DEFAULT_CORS_ORIGINS
            if v.startswith("["):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # Inbound rate limiting (SlowAPI)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT: str = "100/minute"
    RATE_LIMIT_QUOTE: str = "30/minute"

    # Feature flags
    FEATURE_BIG_POST_SHIPPING: bool = False

    # BigPost carrier API
    BIGPOST_BASE_URL: str = "https://app.bigpost.com.au"
    BIGPOST_API_KEY: str = ""
    BIGPOST_TIMEOUT_SECONDS: float = 30.0
    BIGPOST_MAX_RETRIES: int = 2
    BIGPOST_BACKOFF_BASE_SECONDS: float = 1.0
    BIGPOST_RATE_LIMIT_MAX_REQUESTS: int = 100
    BIGPOST_RATE_LIMIT_WINDOW_SECONDS: float = 60.0
    BIGPOST_SOURCE_TYPE: int = 1
    BIGPOST_USER_AGENT: str = "Unwind-Designs/1.0"

    # Warehouse pickup location
    SHIPPING_ORIGIN_NAME: str = "Unwind Designs"
    SHIPPING_ORIGIN_ADDRESS: str = "Export Drive"
    SHIPPING_ORIGIN_ADDRESS_LINE_TWO: str = ""
    SHIPPING_ORIGIN_SUBURB: str = "Brooklyn"
    SHIPPING_ORIGIN_POSTCODE: str = "3012"
    SHIPPING_ORIGIN_STATE: str = "VIC"

    # Fallback estimator
    FREE_SHIPPING_THRESHOLD: float = 500.0
    REMOTE_FREE_SHIPPING_THRESHOLD: float = 750.0

    @property
    def bigpost_enabled(self) -> bool:
        """Carrier path is live only with the flag on and a key configured."""
        return self.FEATURE_BIG_POST_SHIPPING and bool(self.BIGPOST_API_KEY)

    @model_validator(mode="after")
    def validate_shipping_config(self):
        """Catch configurations that would break quoting at runtime."""
        errors = []

        if self.BIGPOST_MAX_RETRIES < 0:
            errors.append("BIGPOST_MAX_RETRIES must be zero or more")
        if self.BIGPOST_TIMEOUT_SECONDS <= 0:
            errors.append("BIGPOST_TIMEOUT_SECONDS must be positive")
        if self.BIGPOST_RATE_LIMIT_MAX_REQUESTS <= 0 or self.BIGPOST_RATE_LIMIT_WINDOW_SECONDS <= 0:
            errors.append("BigPost rate limit window and max requests must be positive")
        if self.REMOTE_FREE_SHIPPING_THRESHOLD < self.FREE_SHIPPING_THRESHOLD:
            errors.append("REMOTE_FREE_SHIPPING_THRESHOLD cannot be below FREE_SHIPPING_THRESHOLD")

        if self.ENVIRONMENT == "production":
            if self.DEBUG:
                errors.append(
                    "DEBUG=True is forbidden in production. "
                    "Set DEBUG=false or ENVIRONMENT=development"
                )
            if self.FEATURE_BIG_POST_SHIPPING and not self.BIGPOST_API_KEY:
                logger.warning(
                    "FEATURE_BIG_POST_SHIPPING is on but BIGPOST_API_KEY is empty - "
                    "all quotes will come from the fallback estimator"
                )

            cors_warnings = [
                f"Localhost CORS origin '{origin}' should be removed in production"
                for origin in self.CORS_ORIGINS
                if "localhost" in origin or "127.0.0.1" in origin
            ]
            if cors_warnings:
                logger.warning(
                    "CORS WARNINGS in production:\n" +
                    "\n".join(f"  - {w}" for w in cors_warnings)
                )

        if errors:
            raise ValueError(
                "INVALID CONFIGURATION:\n" + "\n".join(f"  - {e}" for e in errors)
            )

        return self

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
