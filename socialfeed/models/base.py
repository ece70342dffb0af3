"""Utility mixins shared across ORM models."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum

from sqlalchemy import Column, DateTime, String
from sqlalchemy.sql import func


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RelationStatus(StrEnum):
    """State of a reusable relationship row (like, share, follow)."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class TimestampMixin:
    """Reusable timestamp columns with timezone-aware defaults."""

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )


class SoftDeleteMixin:
    """Rows are live while ``deleted_at`` IS NULL."""

    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self, *, at: datetime | None = None) -> None:
        self.deleted_at = at or utcnow()


class ToggleMixin:
    """Tri-state relationship row: absent (no row), active, or inactive.

    Toggling flips ``status`` on the existing row instead of inserting or
    deleting, so the row id and ``created_at`` survive every on/off cycle.
    Requires :class:`TimestampMixin` on the same model.
    """

    status = Column(
        String(16),
        nullable=False,
        default=RelationStatus.ACTIVE.value,
        server_default=RelationStatus.ACTIVE.value,
        index=True,
    )

    @property
    def is_active(self) -> bool:
        return self.status == RelationStatus.ACTIVE

    def activate(self, *, at: datetime | None = None) -> None:
        self.status = RelationStatus.ACTIVE.value
        self.updated_at = at or utcnow()

    def deactivate(self, *, at: datetime | None = None) -> None:
        self.status = RelationStatus.INACTIVE.value
        self.updated_at = at or utcnow()


__all__ = ["RelationStatus", "SoftDeleteMixin", "TimestampMixin", "ToggleMixin", "utcnow"]
