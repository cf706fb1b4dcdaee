"""
Per-IP request budgets (slowapi).
"""

from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

from kiosk.core.config import settings

# Keyed by client IP
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    enabled=settings.RATE_LIMIT_ENABLED,
)
