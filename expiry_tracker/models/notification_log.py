"""Notification log model used for dedup and rate limiting."""

from datetime import UTC, datetime

from sqlalchemy import JSON, Column, DateTime, Enum, Index, Integer, String

from expiry_tracker.database import Base
from expiry_tracker.models.enums import DeliveryStatus, NotificationType
from expiry_tracker.models.mixins import UserOwnedMixin


class NotificationLog(Base, UserOwnedMixin):
    """Append-only record of notifications sent and on-demand requests served."""

    __tablename__ = "notification_log"
    __table_args__ = (
        Index("ix_notification_log_user_sent", "user_id", "sent_at"),
        Index(
            "ix_notification_log_ingredient_hash",
            "user_id",
            "notification_type",
            "ingredient_hash",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    notification_type = Column(
        Enum(
            NotificationType,
            name="notificationtype",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
        index=True,
    )
    food_item_ids = Column(JSON, nullable=False, default=list)
    ingredient_hash = Column(String(64), nullable=True)  # None for expiry reminders
    sent_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))
    status = Column(
        Enum(
            DeliveryStatus,
            name="deliverystatus",
            values_callable=lambda x: [e.value for e in x],
        ),
        default=DeliveryStatus.SENT,
        nullable=False,
    )
