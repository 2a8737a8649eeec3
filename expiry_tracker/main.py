"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from expiry_tracker.api import recipe_suggestions
from expiry_tracker.config import get_settings
from expiry_tracker.database import init_db
from expiry_tracker.exceptions import RecipeSuggestionError, Unauthorized

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown events."""
    logger.info(f"Starting recipe suggestion API ({settings.environment})")
    if settings.is_development:
        # Production schemas are managed outside the app
        init_db()
    yield


app = FastAPI(
    title="Food Expiry Tracker API",
    description="Recipe suggestions and reminders for food that is about to expire",
    version="0.1.0",
    lifespan=lifespan,
)

# Requests without an Origin header are not affected by CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


@app.exception_handler(RecipeSuggestionError)
async def recipe_suggestion_error_handler(request: Request, exc: RecipeSuggestionError):
    """Render engine errors as ``{"error": message}`` with their status code."""
    if exc.status_code >= 500:
        logger.error(f"Error handling {request.url.path}: {exc.message}", exc_info=exc)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message},
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Render malformed request bodies in the same ``{"error": message}`` shape."""
    errors = exc.errors()
    detail = errors[0].get("msg", "invalid value") if errors else "invalid value"
    return JSONResponse(status_code=422, content={"error": f"Invalid request: {detail}"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """Unexpected failures are reported as a 500 with the error message."""
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": str(exc) or "Internal server error"})


# Register routers
app.include_router(recipe_suggestions.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "environment": settings.environment}
