"""SQLAlchemy models."""

from expiry_tracker.models.food_item import FoodItem
from expiry_tracker.models.notification_log import NotificationLog
from expiry_tracker.models.push_subscription import PushSubscription
from expiry_tracker.models.recipe_cache import RecipeCacheEntry
from expiry_tracker.models.user import User

__all__ = [
    "User",
    "FoodItem",
    "PushSubscription",
    "RecipeCacheEntry",
    "NotificationLog",
]
