"""Recipe suggestion orchestration for on-demand requests and batch sweeps."""

import asyncio
import logging
import time
from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from expiry_tracker.config import Settings, get_settings
from expiry_tracker.exceptions import RateLimited
from expiry_tracker.models.enums import NotificationMethod, NotificationType
from expiry_tracker.schemas.recipe_suggestion import (
    BatchSummary,
    RecipeSuggestionResponse,
    UserProcessingMetrics,
)
from expiry_tracker.services.food_item_service import (
    ExpiringItem,
    FoodItemService,
    group_items_by_user,
)
from expiry_tracker.services.ingredients import build_ingredient_list, generate_ingredient_hash
from expiry_tracker.services.llm import LLMService
from expiry_tracker.services.notification_log import NotificationLedger
from expiry_tracker.services.notification_service import (
    DeliveryChannels,
    DeliveryOutcome,
    NotificationService,
)
from expiry_tracker.services.notification_templates import (
    FALLBACK_EMAIL_SUBJECT,
    RECIPE_EMAIL_SUBJECT,
    build_fallback_email_html,
    build_fallback_push_payload,
    build_recipe_email_html,
    build_recipe_push_payload,
)
from expiry_tracker.services.recipe_cache import RecipeCacheService

logger = logging.getLogger(__name__)

AI_FALLBACK_ERROR = "AI failed, sent fallback"


def local_today(settings: Settings) -> date:
    """Today's calendar date in the application timezone."""
    return datetime.now(ZoneInfo(settings.app_timezone)).date()


def local_midnight_utc(settings: Settings) -> datetime:
    """Start of today in the application timezone, expressed in UTC."""
    tz = ZoneInfo(settings.app_timezone)
    midnight = datetime.now(tz).replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.astimezone(UTC)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class RecipeSuggestionService:
    """Sequences normalization, caching, generation, delivery and the ledger."""

    def __init__(
        self,
        db: Session,
        settings: Settings | None = None,
        llm_service: LLMService | None = None,
        notification_service: NotificationService | None = None,
    ) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.llm_service = llm_service or LLMService(self.settings)
        self.notification_service = notification_service or NotificationService(
            db, self.settings
        )
        self.items = FoodItemService(db)
        self.cache = RecipeCacheService(db, self.settings)
        self.ledger = NotificationLedger(db)

    # --- On-demand ---

    def clamp_expiry_days(self, expiry_days: int | None) -> int:
        """Clamp the requested window to 1..max_expiry_days (default when unset)."""
        if not expiry_days:
            return self.settings.default_expiry_days
        return min(self.settings.max_expiry_days, max(1, expiry_days))

    def enforce_rate_limit(self, user_id: int) -> None:
        """Reject the request if today's on-demand quota is used up.

        A failing count query is logged and the request is allowed.
        """
        limit = self.settings.daily_recipe_request_limit
        try:
            count = self.ledger.count_since(
                user_id,
                NotificationType.RECIPE_SUGGESTION_SINGLE,
                local_midnight_utc(self.settings),
            )
        except SQLAlchemyError as e:
            logger.warning(f"Rate limit check failed for user {user_id}: {e}")
            self.db.rollback()
            return

        if count >= limit:
            logger.info(f"User {user_id} hit the daily recipe limit ({count}/{limit})")
            raise RateLimited(
                f"Daily limit reached. You can request up to {limit} recipe suggestions per day."
            )

    async def suggest_for_user(
        self,
        user_id: int,
        item_ids: list[int] | None = None,
        expiry_days: int | None = None,
    ) -> RecipeSuggestionResponse:
        """Return recipes for one user's expiring items.

        Provider errors propagate; cache and ledger writes are best-effort.
        """
        start = time.monotonic()
        self.enforce_rate_limit(user_id)

        days = self.clamp_expiry_days(expiry_days)
        if item_ids:
            items = self.items.get_items_by_ids(user_id, item_ids)
        else:
            today = local_today(self.settings)
            items = self.items.get_expiring_items(
                end=today + timedelta(days=days), start=today, user_id=user_id
            )

        if not items:
            if item_ids:
                message = "No matching items found"
            else:
                message = f"No items expiring in the next {days} day{'s' if days > 1 else ''}"
            return RecipeSuggestionResponse(message=message)

        ingredients = build_ingredient_list(items)
        if not ingredients:
            return RecipeSuggestionResponse(message="No valid ingredients found")

        ingredient_hash = generate_ingredient_hash(ingredients)

        recipes = self.cache.lookup(ingredient_hash)
        cached = recipes is not None
        if recipes is None:
            generation = await self.llm_service.generate_recipes(ingredients)
            recipes = generation.recipes
            self.cache.store(ingredient_hash, ingredients, generation)

        self.ledger.record(
            user_id,
            NotificationType.RECIPE_SUGGESTION_SINGLE,
            [item.id for item in items],
            ingredient_hash,
        )

        logger.info(
            f"Served {len(recipes)} recipes to user {user_id} "
            f"({'cache hit' if cached else 'generated'})"
        )
        return RecipeSuggestionResponse(
            recipes=recipes,
            ingredients=ingredients,
            cached=cached,
            execution_time_ms=_elapsed_ms(start),
        )

    # --- Batch ---

    async def run_batch_sweep(self) -> BatchSummary:
        """Generate and deliver suggestions to every user with expiring items.

        Each user's pipeline runs as its own task; an exception in one task is
        recorded in that user's metrics and never aborts the sweep. Only a
        failure to read the item store is fatal.
        """
        start = time.monotonic()
        today = local_today(self.settings)
        items = self.items.get_expiring_items(
            end=today + timedelta(days=self.settings.batch_window_days), start=today
        )

        if not items:
            return BatchSummary(
                message="No expiring items found", execution_time_ms=_elapsed_ms(start)
            )

        items_by_user = group_items_by_user(items)
        semaphore = asyncio.Semaphore(self.settings.batch_concurrency)

        async def run(
            user_id: int, user_items: list[ExpiringItem]
        ) -> UserProcessingMetrics | None:
            async with semaphore:
                try:
                    return await self.process_user(user_id, user_items)
                except Exception:
                    self.db.rollback()
                    raise

        outcomes = await asyncio.gather(
            *(run(user_id, user_items) for user_id, user_items in items_by_user.items()),
            return_exceptions=True,
        )

        metrics: list[UserProcessingMetrics] = []
        for user_id, outcome in zip(items_by_user, outcomes, strict=True):
            if isinstance(outcome, Exception):
                logger.error(f"Error processing user {user_id}: {outcome}", exc_info=outcome)
                metrics.append(UserProcessingMetrics(user_id=user_id, error=str(outcome)))
            elif outcome is not None:
                metrics.append(outcome)

        summary = BatchSummary(
            message="AI recipe suggestions processed",
            total_items=len(items),
            users_processed=len(items_by_user),
            total_ai_calls=sum(1 for m in metrics if m.ai_called),
            total_cache_hits=sum(1 for m in metrics if m.cache_hit),
            total_push_sent=sum(
                1
                for m in metrics
                if m.notification_method == NotificationMethod.PUSH and m.delivered
            ),
            total_email_sent=sum(
                1
                for m in metrics
                if m.notification_method == NotificationMethod.EMAIL and m.delivered
            ),
            total_fallbacks=sum(
                1
                for m in metrics
                if m.notification_method and NotificationMethod(m.notification_method).is_fallback
            ),
            total_errors=sum(1 for m in metrics if m.error),
            execution_time_ms=_elapsed_ms(start),
            results=metrics,
        )
        logger.info(
            f"Batch sweep complete: {summary.users_processed} users, "
            f"{summary.total_ai_calls} AI calls, {summary.total_cache_hits} cache hits, "
            f"{summary.total_fallbacks} fallbacks, {summary.total_errors} errors"
        )
        return summary

    async def process_user(
        self,
        user_id: int,
        items: list[ExpiringItem],
    ) -> UserProcessingMetrics | None:
        """Run one user's pipeline. Returns None when the user is skipped."""
        channels = self.notification_service.get_delivery_channels(user_id)
        if channels is None or not channels.reachable:
            return None

        ingredients = build_ingredient_list(items)
        if not ingredients:
            return None

        ingredient_hash = generate_ingredient_hash(ingredients)
        if self.ledger.has_notified(user_id, NotificationType.RECIPE_SUGGESTION, ingredient_hash):
            logger.info(f"User {user_id} already notified for ingredient set {ingredient_hash}")
            return None

        metrics = UserProcessingMetrics(user_id=user_id, ingredient_count=len(ingredients))

        recipes = self.cache.lookup(ingredient_hash)
        metrics.cache_hit = recipes is not None
        if recipes is None:
            metrics.ai_called = True
            try:
                generation = await self.llm_service.generate_recipes(ingredients)
            except Exception as e:
                # Any generation failure still owes the user a notification
                logger.error(f"OpenAI error for user {user_id}: {e}", exc_info=True)
                return await self._send_fallback(channels, items, ingredient_hash, metrics)

            recipes = generation.recipes
            metrics.ai_call_time_ms = generation.time_ms
            metrics.prompt_tokens = generation.prompt_tokens
            metrics.completion_tokens = generation.completion_tokens
            self.cache.store(ingredient_hash, ingredients, generation)

        outcome = await self.notification_service.deliver(
            channels,
            build_recipe_push_payload(recipes, ingredients),
            RECIPE_EMAIL_SUBJECT,
            build_recipe_email_html(recipes, ingredients),
        )
        self._record_delivery(channels, items, ingredient_hash, metrics, outcome)
        return metrics

    async def _send_fallback(
        self,
        channels: DeliveryChannels,
        items: list[ExpiringItem],
        ingredient_hash: str,
        metrics: UserProcessingMetrics,
    ) -> UserProcessingMetrics:
        """Deliver the generic expiring-items notification after an AI failure."""
        outcome = await self.notification_service.deliver(
            channels,
            build_fallback_push_payload(items),
            FALLBACK_EMAIL_SUBJECT,
            build_fallback_email_html(items),
            fallback=True,
        )
        metrics.error = AI_FALLBACK_ERROR
        self._record_delivery(channels, items, ingredient_hash, metrics, outcome)
        return metrics

    def _record_delivery(
        self,
        channels: DeliveryChannels,
        items: list[ExpiringItem],
        ingredient_hash: str,
        metrics: UserProcessingMetrics,
        outcome: DeliveryOutcome | None,
    ) -> None:
        if outcome is None:
            return
        metrics.notification_method = outcome.method
        metrics.delivered = outcome.sent
        metrics.push_results = outcome.push_results
        if outcome.sent:
            self.ledger.record(
                channels.user_id,
                NotificationType.RECIPE_SUGGESTION,
                [item.id for item in items],
                ingredient_hash,
            )
        else:
            logger.warning(
                f"No {outcome.method.value} delivery succeeded for user {channels.user_id}"
            )
