"""SQLAlchemy models for chapters, their video assets and learner progress."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from courseforge.database.base import Base


if TYPE_CHECKING:
    from courseforge.courses.models import Course


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Chapter(Base):
    """An ordered unit of content within a course."""

    __tablename__ = "chapters"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    course_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    video_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_free: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    course: Mapped[Course] = relationship("Course", back_populates="chapters")
    mux_data: Mapped[MuxData | None] = relationship(
        "MuxData",
        back_populates="chapter",
        uselist=False,
        cascade="all, delete-orphan",
    )
    user_progress: Mapped[list[UserProgress]] = relationship(
        "UserProgress",
        back_populates="chapter",
        cascade="all, delete-orphan",
    )

    __table_args__ = (Index("idx_chapters_course_position", "course_id", "position"),)


class MuxData(Base):
    """Identifiers of the transcoded asset the video host keeps for a chapter."""

    __tablename__ = "mux_data"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    asset_id: Mapped[str] = mapped_column(String(255), nullable=False)
    playback_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    chapter_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("chapters.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    chapter: Mapped[Chapter] = relationship("Chapter", back_populates="mux_data")


class UserProgress(Base):
    """Per-learner completion marker for a chapter."""

    __tablename__ = "user_progress"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    chapter_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("chapters.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    chapter: Mapped[Chapter] = relationship("Chapter", back_populates="user_progress")

    __table_args__ = (UniqueConstraint("user_id", "chapter_id", name="uq_user_progress_user_chapter"),)
