"""Rate limiting configuration using slowapi.

A single Limiter instance is shared by the routers that declare
per-endpoint limits and wired into the app in main.py.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Default: 60 requests/minute per client IP, applied to every route by
# SlowAPIMiddleware (see main.py).
# Individual routes can override with @limiter.limit("N/period").
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["60/minute"],
)

LOGIN_RATE_LIMIT = "10/minute"
