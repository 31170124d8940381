"""Domain errors raised by the course and chapter services.

Each error carries the machine-readable kind that the API reports in
``error.code``; the HTTP status follows from the kind.
"""

from fastapi import status


class ProcedureError(Exception):
    """Base exception class for all procedure failures."""

    code: str = "INTERNAL_ERROR"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Something went wrong"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class UnauthorizedError(ProcedureError):
    """The caller has no identity or does not own the target resource."""

    code = "UNAUTHORIZED"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class NotFoundError(ProcedureError):
    """The target resource, or a resource it requires, does not exist."""

    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class BadRequestError(ProcedureError):
    """Preconditions of the procedure are not met."""

    code = "BAD_REQUEST"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request"
