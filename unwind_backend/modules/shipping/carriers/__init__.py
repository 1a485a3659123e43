"""Carrier integrations. BigPost is the only live carrier."""
from unwind_backend.modules.shipping.carriers.bigpost import (
    BigPostClient,
    BigPostConfig,
    quotes_from_response,
)

__all__ = ["BigPostClient", "BigPostConfig", "quotes_from_response"]
