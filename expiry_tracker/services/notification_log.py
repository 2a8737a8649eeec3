"""Notification ledger for batch dedup and on-demand rate limiting."""

import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from expiry_tracker.models import NotificationLog
from expiry_tracker.models.enums import DeliveryStatus, NotificationType

logger = logging.getLogger(__name__)


class NotificationLedger:
    """Reads and appends notification log entries."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def has_notified(
        self,
        user_id: int,
        notification_type: NotificationType,
        ingredient_hash: str,
    ) -> bool:
        """Check if the user already has an entry for this exact ingredient hash."""
        entry = (
            self.db.query(NotificationLog.id)
            .filter(
                NotificationLog.user_id == user_id,
                NotificationLog.notification_type == notification_type,
                NotificationLog.ingredient_hash == ingredient_hash,
            )
            .first()
        )
        return entry is not None

    def count_since(
        self,
        user_id: int,
        notification_type: NotificationType,
        since: datetime,
    ) -> int:
        """Count entries of a type for the user sent at or after ``since``."""
        return (
            self.db.query(NotificationLog)
            .filter(
                NotificationLog.user_id == user_id,
                NotificationLog.notification_type == notification_type,
                NotificationLog.sent_at >= since,
            )
            .count()
        )

    def record(
        self,
        user_id: int,
        notification_type: NotificationType,
        item_ids: list[int],
        ingredient_hash: str | None = None,
        status: DeliveryStatus = DeliveryStatus.SENT,
    ) -> bool:
        """Append an entry. Returns False (after logging) if the write fails."""
        entry = NotificationLog(
            user_id=user_id,
            notification_type=notification_type,
            food_item_ids=list(item_ids),
            ingredient_hash=ingredient_hash,
            status=status,
        )
        try:
            self.db.add(entry)
            self.db.commit()
        except SQLAlchemyError as e:
            logger.warning(
                f"Failed to insert {notification_type.value} log for user {user_id}: {e}"
            )
            self.db.rollback()
            return False
        return True
