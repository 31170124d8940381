"""Core authentication logic: resolve the caller's user id from a request."""

import logging
from functools import lru_cache
from uuid import UUID

from fastapi import Request
from fastapi.concurrency import run_in_threadpool
from supabase import Client, create_client

from courseforge.auth.exceptions import AuthProviderError, InvalidTokenError, MissingTokenError, TokenExpiredError
from courseforge.config.settings import get_settings


logger = logging.getLogger(__name__)

# Identity of the only user in single-user mode (AUTH_PROVIDER=none)
DEFAULT_USER_ID = UUID("00000000-0000-0000-0000-000000000001")


@lru_cache
def get_supabase_client() -> Client | None:
    """Create the Supabase client once, or return None when it is not configured."""
    settings = get_settings()
    if not settings.SUPABASE_URL or not settings.SUPABASE_PUBLISHABLE_KEY:
        return None
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_PUBLISHABLE_KEY)


def extract_token(request: Request) -> str | None:
    """Bearer token from the Authorization header, else from the ``access_token`` cookie."""
    scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()

    # The cookie may be stored with its "Bearer " prefix
    cookie = request.cookies.get("access_token", "").removeprefix("Bearer ").strip()
    return cookie or None


async def validate_supabase_token(token: str) -> UUID:
    """Validate a Supabase access token and return the user id it belongs to."""
    supabase = get_supabase_client()
    if supabase is None:
        logger.error("Supabase client not initialized for multi-user mode")
        raise AuthProviderError("Authentication provider 'supabase' is not properly configured")

    try:
        response = await run_in_threadpool(supabase.auth.get_user, token)
    except Exception as e:
        # supabase-py reports every rejection as a generic AuthApiError
        if "expired" in str(e).lower():
            raise TokenExpiredError from e
        logger.warning("Supabase rejected token: %s", type(e).__name__)
        raise InvalidTokenError from e

    if response is None or response.user is None or not response.user.id:
        logger.warning("Token validation returned no user")
        raise InvalidTokenError

    return UUID(str(response.user.id))


async def resolve_user_id(request: Request) -> UUID:
    """Resolve the verified identity of the caller.

    Single-user mode: always DEFAULT_USER_ID (refused in production).
    Multi-user mode: the Supabase user behind the bearer token, or 401.
    """
    settings = get_settings()
    provider = settings.AUTH_PROVIDER.lower()

    if provider == "none":
        if settings.ENVIRONMENT == "production":
            logger.error("AUTH_PROVIDER='none' is not allowed in production!")
            msg = "Single-user mode (AUTH_PROVIDER='none') is not allowed in production."
            raise ValueError(msg)
        return DEFAULT_USER_ID

    if provider == "supabase":
        token = extract_token(request)
        if not token:
            logger.debug("Missing Authorization header and access_token cookie")
            raise MissingTokenError
        return await validate_supabase_token(token)

    logger.error("Unknown auth provider: %s", settings.AUTH_PROVIDER)
    raise AuthProviderError(f"Unknown authentication provider '{settings.AUTH_PROVIDER}'")
