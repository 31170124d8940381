"""Caller identity bundled with the request session.

Services receive a ``UserContext`` rather than a bare user id so every
ownership lookup goes through the same user-scoped query.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, TypeVar
from uuid import UUID

from fastapi import Depends
from sqlalchemy import Select, select

from courseforge.auth.dependencies import get_current_user_id
from courseforge.database.session import DbSession
from courseforge.exceptions import NotFoundError, UnauthorizedError


if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


Owned = TypeVar("Owned")


class UserContext:
    """The verified caller and the session their procedure runs in.

    Lookups filter on the model's ``user_id`` column, so a row owned by
    someone else looks exactly like a missing one. Models owned through a
    parent (chapters, attachments) have no such column and must be scoped
    by the feature service.
    """

    def __init__(self, user_id: UUID, session: AsyncSession) -> None:
        self.user_id = user_id
        self.session = session

    def _owned(self, model: type[Owned], record_id: UUID) -> Select:
        owner_column = getattr(model, "user_id", None)
        if owner_column is None:
            msg = f"{model.__name__} is owned through its parent; scope the query explicitly"
            raise TypeError(msg)
        return select(model).where(model.id == record_id, owner_column == self.user_id)

    async def get_owned(self, model: type[Owned], record_id: UUID) -> Owned | None:
        """The caller's row with this id, or None."""
        return await self.session.scalar(self._owned(model, record_id))

    async def get_or_404(self, model: type[Owned], record_id: UUID, resource_name: str = "resource") -> Owned:
        """The caller's row, or NOT_FOUND."""
        row = await self.get_owned(model, record_id)
        if row is None:
            raise NotFoundError(f"{resource_name.capitalize()} not found")
        return row

    async def require_owner(self, model: type[Owned], record_id: UUID, message: str | None = None) -> Owned:
        """The caller's row, or UNAUTHORIZED."""
        row = await self.get_owned(model, record_id)
        if row is None:
            raise UnauthorizedError(message)
        return row


async def get_auth_context(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    session: DbSession,
) -> UserContext:
    return UserContext(user_id=user_id, session=session)


CurrentAuth = Annotated[UserContext, Depends(get_auth_context)]
