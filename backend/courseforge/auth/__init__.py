"""Authentication module exports."""

from courseforge.auth.context import (
    CurrentAuth,
    UserContext,
    get_auth_context,
)


__all__ = [
    "CurrentAuth",
    "UserContext",
    "get_auth_context",
]
