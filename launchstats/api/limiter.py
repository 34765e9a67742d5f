"""Rate limiter shared by every API route.

Routes opt in with ``@limiter.limit(api_rate_limit)``. The limit string is
read on each request, so ``configure`` can change it per app instance.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

DEFAULT_RATE_LIMIT = "60/minute"

# Rate limiter (shared instance)
limiter = Limiter(key_func=get_remote_address)

_rate_limit = DEFAULT_RATE_LIMIT


def configure(rate_limit: str) -> None:
    """Set the per-client limit and clear counters left by a previous app."""
    global _rate_limit
    _rate_limit = rate_limit
    limiter.reset()


def api_rate_limit() -> str:
    return _rate_limit
