"""
Error handling and sanitization middleware

Unhandled exceptions are logged with their traceback and answered with a
generic 500 so carrier credentials, URLs and stack frames never reach the
storefront. Debug mode returns the raw message.
"""
import logging
import traceback
from typing import Union

from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from unwind_backend.core.config import settings

logger = logging.getLogger(__name__)

# Patterns that indicate internal/sensitive error information
SENSITIVE_PATTERNS = [
    "password",
    "secret",
    "token",
    "key",
    "bearer",
    "authorization",
    "credential",
    "bigpost.com.au",
    "traceback",
    "file \"",
    "line ",
]

GENERIC_MESSAGE = "An unexpected error occurred. Please try again later."


def is_sensitive_error(message: str) -> bool:
    """Check if error message contains sensitive information."""
    message_lower = message.lower()
    return any(pattern in message_lower for pattern in SENSITIVE_PATTERNS)


def sanitize_error_message(error: Union[str, Exception]) -> str:
    """
    Sanitize an error message for safe client exposure.

    Args:
        error: The error string or exception

    Returns:
        Sanitized error message safe for client
    """
    message = error if isinstance(error, str) else str(error)

    if settings.DEBUG:
        return message

    if is_sensitive_error(message):
        return "An internal error occurred. Please try again later."

    if len(message) > 200:
        return message[:200] + "..."

    return message


class ErrorSanitizationMiddleware(BaseHTTPMiddleware):
    """
    Catch unhandled exceptions and sanitize error responses.

    - In production: Returns generic error, logs full details
    - In development: Returns full error for debugging
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except HTTPException:
            raise
        except Exception as e:
            error_id = f"{request.client.host if request.client else 'unknown'}-{id(e)}"
            logger.error(
                f"Unhandled exception [{error_id}]: {type(e).__name__}: {str(e)}\n"
                f"Path: {request.url.path}\n"
                f"Method: {request.method}\n"
                f"Traceback:\n{traceback.format_exc()}"
            )

            content = {
                "success": False,
                "error": "internal_error",
                "message": str(e) if settings.DEBUG else GENERIC_MESSAGE,
                "error_id": error_id,
            }
            if settings.DEBUG:
                content["type"] = type(e).__name__
            return JSONResponse(status_code=500, content=content)
