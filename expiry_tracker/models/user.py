"""User model."""

from sqlalchemy import Boolean, Column, Integer, String
from sqlalchemy.orm import relationship

from expiry_tracker.database import Base
from expiry_tracker.models.mixins import TimestampMixin


class User(Base, TimestampMixin):
    """A subscriber to expiry notifications.

    Email is optional; users without one can only be reached by push.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=True, index=True)
    name = Column(String(255), nullable=True)
    # Opt-in for batch suggestions and reminders
    notification_enabled = Column(Boolean, nullable=False, default=False)

    food_items = relationship("FoodItem", back_populates="user")
    push_subscriptions = relationship("PushSubscription", back_populates="user")
