"""Recipe cache service keyed by ingredient hash."""

import logging
from datetime import UTC, datetime, timedelta

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from expiry_tracker.config import Settings, get_settings
from expiry_tracker.models import RecipeCacheEntry
from expiry_tracker.schemas.recipe_suggestion import RecipeSuggestion
from expiry_tracker.services.llm import GenerationResult

logger = logging.getLogger(__name__)


class RecipeCacheService:
    """Lookup and store AI-generated recipes by ingredient hash.

    The same ingredient set is treated as always producing the same recipes,
    so entries never need to be invalidated on read.
    """

    def __init__(self, db: Session, settings: Settings | None = None) -> None:
        self.db = db
        self.settings = settings or get_settings()

    def lookup(self, ingredient_hash: str) -> list[RecipeSuggestion] | None:
        """Return the most recently cached recipes for a hash, if any."""
        try:
            entry = (
                self.db.query(RecipeCacheEntry)
                .filter(RecipeCacheEntry.ingredient_hash == ingredient_hash)
                .order_by(RecipeCacheEntry.created_at.desc(), RecipeCacheEntry.id.desc())
                .first()
            )
        except SQLAlchemyError as e:
            logger.warning(f"Recipe cache lookup failed for {ingredient_hash}: {e}")
            self.db.rollback()
            return None

        if entry is None:
            return None

        try:
            return [RecipeSuggestion.model_validate(recipe) for recipe in entry.recipes]
        except (ValidationError, TypeError) as e:
            logger.warning(f"Ignoring unreadable recipe cache entry {entry.id}: {e}")
            return None

    def store(
        self,
        ingredient_hash: str,
        ingredients: list[str],
        generation: GenerationResult,
    ) -> None:
        """Insert a cache entry. Failures are logged, never raised."""
        now = datetime.now(UTC)
        entry = RecipeCacheEntry(
            ingredient_hash=ingredient_hash,
            ingredients=ingredients,
            recipes=[recipe.model_dump() for recipe in generation.recipes],
            prompt_text=generation.prompt_text,
            model=generation.model,
            prompt_tokens=generation.prompt_tokens,
            completion_tokens=generation.completion_tokens,
            total_tokens=generation.total_tokens,
            generation_time_ms=generation.time_ms,
            created_at=now,
            expires_at=now + timedelta(hours=self.settings.recipe_cache_retention_hours),
        )
        try:
            self.db.add(entry)
            self.db.commit()
        except SQLAlchemyError as e:
            # Recipes were still generated, they just won't be cached
            logger.warning(f"Failed to store recipe cache for {ingredient_hash}: {e}")
            self.db.rollback()

    def purge_expired(self, now: datetime | None = None) -> int:
        """Delete entries past their retention window. Returns rows removed."""
        cutoff = now or datetime.now(UTC)
        deleted = (
            self.db.query(RecipeCacheEntry)
            .filter(RecipeCacheEntry.expires_at < cutoff)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        logger.info(f"Purged {deleted} expired recipe cache entries")
        return deleted
