"""
api/limiter.py -- Shared slowapi rate limiter instance.

Limits are applied only by the @limiter.limit() decorator on individual routes
(api/routes/v1/auth.py). api/main.py stores the instance on app.state.limiter
and renders RateLimitExceeded; there is no SlowAPIMiddleware, because a
callable limit such as login_rate_limit is evaluated by the decorator alone.

Using a single shared instance ensures all routes share the same in-memory
counter store. If this were instantiated in each module separately, each
module would get its own isolated counter and rate limits would never trigger.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")


def login_rate_limit() -> str:
    """Current LOGIN_RATE_LIMIT, read when the limit is evaluated."""
    return get_settings().login_rate_limit
