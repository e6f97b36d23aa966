"""
Rate limiter shared by main.py and the reception router.

Import `limiter` from here to use the @limiter.limit() decorator.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from frontdesk.core.config import settings

# Per client IP; RATE_LIMIT_ENABLED=false turns it off
limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.rate_limit_enabled,
)
