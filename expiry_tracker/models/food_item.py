"""Food item model."""

from sqlalchemy import Column, Date, Enum, Index, Integer, String
from sqlalchemy.orm import relationship

from expiry_tracker.database import Base
from expiry_tracker.models.enums import FoodItemStatus
from expiry_tracker.models.mixins import TimestampMixin, UserOwnedMixin


class FoodItem(Base, UserOwnedMixin, TimestampMixin):
    """A perishable item owned by a user."""

    __tablename__ = "food_items"
    __table_args__ = (Index("ix_food_items_status_expiry", "status", "expiry_date"),)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=True)  # "dairy", "produce", etc.
    expiry_date = Column(Date, nullable=False)
    status = Column(
        Enum(
            FoodItemStatus,
            name="fooditemstatus",
            values_callable=lambda x: [e.value for e in x],
        ),
        default=FoodItemStatus.ACTIVE,
        nullable=False,
    )

    user = relationship("User", back_populates="food_items")
