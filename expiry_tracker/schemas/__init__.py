"""Pydantic schemas for API requests and responses."""

from expiry_tracker.schemas.recipe_suggestion import (
    BatchSummary,
    PushResult,
    RecipeSuggestion,
    RecipeSuggestionRequest,
    RecipeSuggestionResponse,
    ReminderSummary,
    ReminderUserResult,
    UserProcessingMetrics,
)

__all__ = [
    "RecipeSuggestion",
    "RecipeSuggestionRequest",
    "RecipeSuggestionResponse",
    "PushResult",
    "UserProcessingMetrics",
    "BatchSummary",
    "ReminderUserResult",
    "ReminderSummary",
]
