"""Delivery date helpers for quote display."""
from datetime import date, timedelta
from typing import Optional


def estimate_delivery_date(business_days: int, start: Optional[date] = None) -> date:
    """Add business days to `start` (today by default), skipping weekends."""
    current = start or date.today()
    remaining = max(0, business_days)
    while remaining > 0:
        current += timedelta(days=1)
        if current.weekday() < 5:
            remaining -= 1
    return current


def format_delivery_days(days: int) -> str:
    if days <= 0:
        return "Same day"
    if days == 1:
        return "1 business day"
    return f"{days} business days"
