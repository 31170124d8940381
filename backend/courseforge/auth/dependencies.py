"""FastAPI authentication dependencies.

The core authentication logic lives in config.py; this module wraps it for
use as FastAPI dependencies.
"""

from uuid import UUID

from fastapi import Request

from courseforge.auth.config import resolve_user_id


async def get_current_user_id(request: Request) -> UUID:
    """Get the caller's user id for FastAPI routes.

    Stores the resolved id on ``request.state`` so error handlers can log it.
    """
    user_id = await resolve_user_id(request)
    request.state.user_id = user_id
    return user_id
