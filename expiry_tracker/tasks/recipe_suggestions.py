"""Celery tasks for scheduled recipe suggestion and reminder sweeps."""

import asyncio
import logging

from sqlalchemy.orm import Session

from expiry_tracker.celery_app import app as celery_app
from expiry_tracker.database import SessionLocal
from expiry_tracker.services.expiry_reminder_service import ExpiryReminderService
from expiry_tracker.services.recipe_cache import RecipeCacheService
from expiry_tracker.services.recipe_suggestion_service import RecipeSuggestionService

logger = logging.getLogger(__name__)


@celery_app.task
def send_recipe_suggestions() -> dict:
    """Run the batch recipe suggestion sweep across all users.

    Returns:
        dict with the sweep summary
    """
    db: Session = SessionLocal()

    try:
        summary = asyncio.run(RecipeSuggestionService(db).run_batch_sweep())
        logger.info(
            f"Recipe suggestion sweep complete: {summary.users_processed} users, "
            f"{summary.total_errors} errors"
        )
        return summary.model_dump(mode="json")

    except Exception as e:
        logger.error(f"Error in recipe suggestion sweep: {e}", exc_info=True)
        db.rollback()
        return {"error": str(e)}

    finally:
        db.close()


@celery_app.task
def send_expiry_reminders() -> dict:
    """Send the daily grouped expiry reminder push."""
    db: Session = SessionLocal()

    try:
        summary = asyncio.run(ExpiryReminderService(db).send_reminders())
        return summary.model_dump(mode="json")

    except Exception as e:
        logger.error(f"Error sending expiry reminders: {e}", exc_info=True)
        db.rollback()
        return {"error": str(e)}

    finally:
        db.close()


@celery_app.task
def purge_recipe_cache() -> dict:
    """Delete recipe cache rows past their retention window."""
    db: Session = SessionLocal()

    try:
        deleted = RecipeCacheService(db).purge_expired()
        return {"deleted": deleted}

    except Exception as e:
        logger.error(f"Error purging recipe cache: {e}", exc_info=True)
        db.rollback()
        return {"error": str(e)}

    finally:
        db.close()
