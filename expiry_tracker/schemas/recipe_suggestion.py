"""Recipe suggestion schemas."""

from pydantic import BaseModel, Field, field_validator

from expiry_tracker.models.enums import NotificationMethod

# --- Recipes ---


class RecipeSuggestion(BaseModel):
    """A single AI-suggested recipe."""

    title: str
    description: str
    steps: list[str] = Field(default_factory=list)
    ingredients_used: list[str] = Field(default_factory=list)


# --- On-demand request ---


class RecipeSuggestionRequest(BaseModel):
    """Body for an on-demand suggestion request.

    ``item_ids`` takes precedence over ``expiry_days`` when non-empty.
    Values of ``expiry_days`` that are not integers are treated as unset.
    """

    item_ids: list[int] | None = None
    expiry_days: int | None = None

    @field_validator("expiry_days", mode="before")
    @classmethod
    def parse_expiry_days(cls, value):
        """Unparsable windows fall back to the default instead of failing."""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, float):
            return int(value)
        try:
            return int(str(value).strip())
        except ValueError:
            return None


class RecipeSuggestionResponse(BaseModel):
    """On-demand suggestion result."""

    recipes: list[RecipeSuggestion] = Field(default_factory=list)
    ingredients: list[str] = Field(default_factory=list)
    cached: bool = False
    message: str | None = None
    execution_time_ms: int | None = None


# --- Batch sweep ---


class PushResult(BaseModel):
    """Outcome of one push endpoint delivery attempt."""

    success: bool
    endpoint: str
    error: str | None = None
    status_code: int | None = None


class UserProcessingMetrics(BaseModel):
    """Per-user metrics collected during a batch sweep."""

    user_id: int
    ingredient_count: int = 0
    cache_hit: bool = False
    ai_called: bool = False
    ai_call_time_ms: int | None = None
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    notification_method: NotificationMethod | None = None
    delivered: bool = False
    push_results: list[PushResult] | None = None
    error: str | None = None


class BatchSummary(BaseModel):
    """Aggregate result of a batch sweep."""

    message: str
    total_items: int = 0
    users_processed: int = 0
    total_ai_calls: int = 0
    total_cache_hits: int = 0
    total_push_sent: int = 0
    total_email_sent: int = 0
    total_fallbacks: int = 0
    total_errors: int = 0
    execution_time_ms: int = 0
    results: list[UserProcessingMetrics] = Field(default_factory=list)


# --- Expiry reminders ---


class ReminderUserResult(BaseModel):
    """Per-user result of the expiry reminder sweep."""

    user_id: int
    item_count: int = 0
    push_results: list[PushResult] = Field(default_factory=list)
    error: str | None = None


class ReminderSummary(BaseModel):
    """Aggregate result of the expiry reminder sweep."""

    message: str
    total_items: int = 0
    users_processed: int = 0
    results: list[ReminderUserResult] = Field(default_factory=list)
