"""Read-only queries against the food item store."""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from expiry_tracker.exceptions import UpstreamQueryFailure
from expiry_tracker.models import FoodItem
from expiry_tracker.models.enums import FoodItemStatus

logger = logging.getLogger(__name__)


class FoodItemService:
    """Queries active food items, always ordered by expiry date ascending."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_expiring_items(
        self,
        end: date,
        start: date | None = None,
        user_id: int | None = None,
    ) -> list[FoodItem]:
        """Active items expiring on or before ``end`` (and on/after ``start``).

        When ``user_id`` is None the query spans every user.
        """
        query = self.db.query(FoodItem).filter(
            FoodItem.status == FoodItemStatus.ACTIVE,
            FoodItem.expiry_date <= end,
        )
        if start is not None:
            query = query.filter(FoodItem.expiry_date >= start)
        if user_id is not None:
            query = query.filter(FoodItem.user_id == user_id)
        return self._fetch(query)

    def get_items_by_ids(self, user_id: int, item_ids: list[int]) -> list[FoodItem]:
        """The user's active items among the given ids."""
        query = self.db.query(FoodItem).filter(
            FoodItem.user_id == user_id,
            FoodItem.status == FoodItemStatus.ACTIVE,
            FoodItem.id.in_(item_ids),
        )
        return self._fetch(query)

    def _fetch(self, query) -> list[FoodItem]:
        try:
            return query.order_by(FoodItem.expiry_date.asc(), FoodItem.id.asc()).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch food items: {e}")
            self.db.rollback()
            raise UpstreamQueryFailure(f"Failed to fetch items: {e}") from e


@dataclass(frozen=True)
class ExpiringItem:
    """Detached copy of the item fields a sweep needs.

    Sweeps share one session across concurrent per-user tasks, so they work
    on copies that commits and rollbacks in other tasks cannot expire.
    """

    id: int
    user_id: int
    name: str
    expiry_date: date

    @classmethod
    def from_row(cls, item: FoodItem) -> "ExpiringItem":
        return cls(id=item.id, user_id=item.user_id, name=item.name, expiry_date=item.expiry_date)


def group_items_by_user(items: list[FoodItem]) -> dict[int, list[ExpiringItem]]:
    """Group items by owning user, preserving expiry order within each group."""
    grouped: dict[int, list[ExpiringItem]] = defaultdict(list)
    for item in items:
        grouped[item.user_id].append(ExpiringItem.from_row(item))
    return dict(grouped)
