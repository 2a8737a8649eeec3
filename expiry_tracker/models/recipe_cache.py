"""Recipe cache model for AI-generated suggestions."""

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from expiry_tracker.database import Base


class RecipeCacheEntry(Base):
    """AI-generated recipes keyed by the hash of an ingredient set.

    Rows are insert-only. ``expires_at`` only tells the housekeeping job
    which rows it may purge; lookups ignore it.
    """

    __tablename__ = "recipe_cache"

    id = Column(Integer, primary_key=True, index=True)
    ingredient_hash = Column(String(64), nullable=False, index=True)
    # The normalized ingredient list that was sent to the model
    ingredients = Column(JSON, nullable=False)
    # [{"title", "description", "steps", "ingredients_used"}, ...]
    recipes = Column(JSON, nullable=False)
    prompt_text = Column(Text, nullable=True)
    model = Column(String(100), nullable=False)
    prompt_tokens = Column(Integer, nullable=True)
    completion_tokens = Column(Integer, nullable=True)
    total_tokens = Column(Integer, nullable=True)
    generation_time_ms = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
