"""Enums for model fields."""

from enum import Enum


class FoodItemStatus(str, Enum):
    """Lifecycle status of a perishable item."""

    ACTIVE = "active"
    USED = "used"
    DISCARDED = "discarded"


class NotificationType(str, Enum):
    """Categories recorded in the notification log."""

    EXPIRY_REMINDER = "expiry_reminder"
    RECIPE_SUGGESTION = "recipe_suggestion"
    RECIPE_SUGGESTION_SINGLE = "recipe_suggestion_single"


class DeliveryStatus(str, Enum):
    """Delivery outcome stored with a notification log entry."""

    SENT = "sent"
    FAILED = "failed"


class NotificationMethod(str, Enum):
    """Channel used to deliver a batch notification."""

    PUSH = "push"
    EMAIL = "email"
    FALLBACK_PUSH = "fallback_push"
    FALLBACK_EMAIL = "fallback_email"

    @property
    def is_fallback(self) -> bool:
        """Check if this method delivered the generic fallback payload."""
        return self in (NotificationMethod.FALLBACK_PUSH, NotificationMethod.FALLBACK_EMAIL)
