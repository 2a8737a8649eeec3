"""Mixins for SQLAlchemy models."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, func
from sqlalchemy.orm import declared_attr


class TimestampMixin:
    """Server-managed created_at/updated_at columns for mutable rows."""

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class UserOwnedMixin:
    """Indexed ``user_id`` foreign key for rows that belong to one user."""

    @declared_attr
    def user_id(cls):  # noqa: N805
        return Column(
            Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
        )
