"""Daily expiry reminders without recipe suggestions."""

import logging
from datetime import timedelta

from sqlalchemy.orm import Session

from expiry_tracker.config import Settings, get_settings
from expiry_tracker.models.enums import NotificationType
from expiry_tracker.schemas.recipe_suggestion import ReminderSummary, ReminderUserResult
from expiry_tracker.services.food_item_service import FoodItemService, group_items_by_user
from expiry_tracker.services.notification_log import NotificationLedger
from expiry_tracker.services.notification_service import NotificationService
from expiry_tracker.services.notification_templates import build_expiry_reminder_payload
from expiry_tracker.services.recipe_suggestion_service import local_midnight_utc, local_today

logger = logging.getLogger(__name__)


class ExpiryReminderService:
    """Push a grouped reminder to each user with items expiring this week."""

    def __init__(
        self,
        db: Session,
        settings: Settings | None = None,
        notification_service: NotificationService | None = None,
    ) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.notification_service = notification_service or NotificationService(
            db, self.settings
        )
        self.items = FoodItemService(db)
        self.ledger = NotificationLedger(db)

    async def send_reminders(self) -> ReminderSummary:
        """Send at most one reminder per user per day.

        Items already past their expiry date are included and reported as
        urgent.
        """
        today = local_today(self.settings)
        items = self.items.get_expiring_items(
            end=today + timedelta(days=self.settings.reminder_window_days)
        )
        if not items:
            return ReminderSummary(message="No expiring items found")

        items_by_user = group_items_by_user(items)
        sent_since = local_midnight_utc(self.settings)
        results = []

        for user_id, user_items in items_by_user.items():
            try:
                channels = self.notification_service.get_delivery_channels(user_id)
                if channels is None or not channels.has_push:
                    continue

                already_sent = self.ledger.count_since(
                    user_id, NotificationType.EXPIRY_REMINDER, sent_since
                )
                if already_sent:
                    logger.info(f"Expiry reminder already sent today for user {user_id}")
                    continue

                payload = build_expiry_reminder_payload(user_items, today)
                report = await self.notification_service.send_push(channels.subscriptions, payload)

                if report.sent:
                    self.ledger.record(
                        user_id,
                        NotificationType.EXPIRY_REMINDER,
                        [item.id for item in user_items],
                    )

                results.append(
                    ReminderUserResult(
                        user_id=user_id,
                        item_count=len(user_items),
                        push_results=report.results,
                    )
                )
            except Exception as e:
                logger.error(f"Error processing user {user_id}: {e}", exc_info=True)
                self.db.rollback()
                results.append(ReminderUserResult(user_id=user_id, error=str(e)))

        logger.info(f"Expiry reminders processed for {len(items_by_user)} users")
        return ReminderSummary(
            message="Expiry reminders processed",
            total_items=len(items),
            users_processed=len(items_by_user),
            results=results,
        )
