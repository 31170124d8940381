"""SQLAlchemy model for course categories."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from courseforge.database.base import Base


if TYPE_CHECKING:
    from courseforge.courses.models import Course


class Category(Base):
    """Category a course can be filed under."""

    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    courses: Mapped[list[Course]] = relationship("Course", back_populates="category")
