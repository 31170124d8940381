"""Response hardening and request rate limiting."""

from collections.abc import Awaitable, Callable

from fastapi import Request
from fastapi.responses import Response
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from courseforge.config.settings import get_settings


_settings = get_settings()

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

# Counters live in process memory, keyed by client address
limiter = Limiter(key_func=get_remote_address, enabled=_settings.RATE_LIMIT_ENABLED)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds SECURITY_HEADERS to responses that do not already set them."""

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


@limiter.limit(_settings.API_RATE_LIMIT)
async def procedure_rate_limit(request: Request) -> None:
    """Router dependency: counts each procedure call against API_RATE_LIMIT."""
