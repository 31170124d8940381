"""Authentication failures.

``AuthenticationError`` and its subclasses are the caller's problem (401);
``AuthProviderError`` means this deployment's auth setup is broken (500).
"""

from fastapi import HTTPException, status


class AuthenticationError(HTTPException):
    """The request carries no identity, or one the provider rejected."""

    default_detail = "Authentication failed"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail or self.default_detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class MissingTokenError(AuthenticationError):
    default_detail = "Authentication required"


class TokenExpiredError(AuthenticationError):
    default_detail = "Token has expired"


class InvalidTokenError(AuthenticationError):
    default_detail = "Invalid token"


class AuthProviderError(HTTPException):
    """AUTH_PROVIDER is unknown or missing the settings it needs."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
