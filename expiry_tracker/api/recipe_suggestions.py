"""Recipe suggestion API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Body, Depends

from expiry_tracker.api.dependencies import (
    get_current_user,
    get_expiry_reminder_service,
    get_recipe_suggestion_service,
    require_service_key,
)
from expiry_tracker.models.user import User
from expiry_tracker.schemas.recipe_suggestion import (
    BatchSummary,
    RecipeSuggestionRequest,
    RecipeSuggestionResponse,
    ReminderSummary,
)
from expiry_tracker.services.expiry_reminder_service import ExpiryReminderService
from expiry_tracker.services.recipe_suggestion_service import RecipeSuggestionService

router = APIRouter(prefix="/api/v1", tags=["recipe-suggestions"])


@router.post("/recipe-suggestions", response_model=RecipeSuggestionResponse)
async def suggest_recipes(
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[RecipeSuggestionService, Depends(get_recipe_suggestion_service)],
    request: Annotated[RecipeSuggestionRequest | None, Body()] = None,
) -> RecipeSuggestionResponse:
    """Suggest recipes for the current user's expiring items."""
    request = request or RecipeSuggestionRequest()
    return await service.suggest_for_user(
        current_user.id,
        item_ids=request.item_ids,
        expiry_days=request.expiry_days,
    )


@router.post(
    "/recipe-suggestions/batch",
    response_model=BatchSummary,
    dependencies=[Depends(require_service_key)],
)
async def run_recipe_suggestion_sweep(
    service: Annotated[RecipeSuggestionService, Depends(get_recipe_suggestion_service)],
) -> BatchSummary:
    """Generate and deliver recipe suggestions to all users (scheduled caller only)."""
    return await service.run_batch_sweep()


@router.post(
    "/expiry-reminders",
    response_model=ReminderSummary,
    dependencies=[Depends(require_service_key)],
)
async def send_expiry_reminders(
    service: Annotated[ExpiryReminderService, Depends(get_expiry_reminder_service)],
) -> ReminderSummary:
    """Send the daily expiry reminder push to all users (scheduled caller only)."""
    return await service.send_reminders()
