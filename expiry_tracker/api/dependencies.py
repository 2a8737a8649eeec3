"""FastAPI dependencies for authentication, database and services."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from expiry_tracker.database import get_db
from expiry_tracker.exceptions import Forbidden, Unauthorized
from expiry_tracker.models.user import User
from expiry_tracker.services.auth import get_token_user_id, is_service_key
from expiry_tracker.services.expiry_reminder_service import ExpiryReminderService
from expiry_tracker.services.recipe_suggestion_service import RecipeSuggestionService

# Missing credentials are reported as Unauthorized by the dependencies below
security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> User:
    """Get the current authenticated user from JWT token."""
    if credentials is None:
        raise Unauthorized("Unauthorized")

    user_id = get_token_user_id(credentials.credentials)
    if user_id is None:
        raise Unauthorized("Invalid token")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise Unauthorized("User not found")

    return user


def require_service_key(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> None:
    """Allow only the trusted batch caller; user tokens are rejected."""
    if credentials is None:
        raise Unauthorized("Unauthorized")
    if not is_service_key(credentials.credentials):
        raise Forbidden("Forbidden: batch mode requires service role key")


def get_recipe_suggestion_service(
    db: Annotated[Session, Depends(get_db)],
) -> RecipeSuggestionService:
    """Get recipe suggestion service with dependencies."""
    return RecipeSuggestionService(db)


def get_expiry_reminder_service(
    db: Annotated[Session, Depends(get_db)],
) -> ExpiryReminderService:
    """Get expiry reminder service with dependencies."""
    return ExpiryReminderService(db)
