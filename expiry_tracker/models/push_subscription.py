"""Push subscription model for web push notifications."""

from sqlalchemy import Boolean, Column, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from expiry_tracker.database import Base
from expiry_tracker.models.mixins import TimestampMixin, UserOwnedMixin


class PushSubscription(Base, UserOwnedMixin, TimestampMixin):
    """A browser push endpoint registered by a user.

    Inactive rows are kept for auditing but never receive notifications.
    """

    __tablename__ = "push_subscriptions"
    __table_args__ = (UniqueConstraint("user_id", "endpoint", name="uq_user_endpoint"),)

    id = Column(Integer, primary_key=True, index=True)
    endpoint = Column(String(500), nullable=False)
    p256dh_key = Column(String(200), nullable=False)
    auth_key = Column(String(100), nullable=False)
    # Cleared when the push service reports the endpoint as gone (HTTP 410)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    user = relationship("User", back_populates="push_subscriptions")

    @property
    def subscription_info(self) -> dict:
        """Endpoint and keys in the shape pywebpush expects."""
        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.p256dh_key, "auth": self.auth_key},
        }
