"""Pytest configuration and fixtures."""

import os

# Settings are cached on first use, so the test environment must be set first
os.environ["DATABASE_URL"] = os.getenv("TEST_DATABASE_URL", "sqlite:///./test.db")
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["SERVICE_ROLE_KEY"] = "test-service-key"
os.environ["APP_TIMEZONE"] = "UTC"
os.environ["ENVIRONMENT"] = "test"

from datetime import UTC, date, datetime, timedelta  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.exc import SQLAlchemyError  # noqa: E402

from expiry_tracker.api.dependencies import get_recipe_suggestion_service  # noqa: E402
from expiry_tracker.config import Settings  # noqa: E402
from expiry_tracker.database import Base, SessionLocal, engine, get_db  # noqa: E402
from expiry_tracker.main import app  # noqa: E402
from expiry_tracker.models import FoodItem, PushSubscription, User  # noqa: E402
from expiry_tracker.models.enums import FoodItemStatus  # noqa: E402
from expiry_tracker.schemas.recipe_suggestion import RecipeSuggestion  # noqa: E402
from expiry_tracker.services.auth import create_access_token  # noqa: E402
from expiry_tracker.services.llm import GenerationResult  # noqa: E402
from expiry_tracker.services.notification_service import NotificationService  # noqa: E402
from expiry_tracker.services.recipe_suggestion_service import (  # noqa: E402
    RecipeSuggestionService,
)

SERVICE_KEY = "test-service-key"


class AuthHeaders(dict):
    """Dict subclass that also stores user_id."""

    def __init__(self, *args, user_id: int | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_id = user_id


def utc_today() -> date:
    """Today's date in the app timezone used by the tests."""
    return datetime.now(UTC).date()


def make_recipes(count: int = 3) -> list[RecipeSuggestion]:
    """Build distinct recipe suggestions."""
    return [
        RecipeSuggestion(
            title=f"Recipe {i}",
            description=f"Dish number {i}.",
            steps=["Chop", "Cook", "Serve"],
            ingredients_used=["eggs", "milk"],
        )
        for i in range(1, count + 1)
    ]


def broken_session(message: str = "connection lost") -> MagicMock:
    """Session stand-in whose queries fail when they are executed."""
    query = MagicMock()
    query.filter.return_value = query
    query.order_by.return_value = query
    query.all.side_effect = SQLAlchemyError(message)
    session = MagicMock()
    session.query.return_value = query
    return session


def make_generation(count: int = 3) -> GenerationResult:
    """Build a provider result with diagnostics."""
    return GenerationResult(
        recipes=make_recipes(count),
        prompt_text="I have these ingredients expiring soon: eggs, milk.",
        model="gpt-5-mini",
        prompt_tokens=120,
        completion_tokens=340,
        total_tokens=460,
        time_ms=850,
    )


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = SessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture
def settings():
    """Settings with every outbound channel configured."""
    return Settings(
        service_role_key=SERVICE_KEY,
        openai_api_key="sk-test",
        vapid_public_key="test-public-key",
        vapid_private_key="test-private-key",
        vapid_email="alerts@example.com",
        resend_api_key="re_test",
        app_timezone="UTC",
    )


@pytest.fixture
def make_user(db):
    """Factory for users with notification preferences."""

    def _make_user(
        email: str | None = "cook@example.com",
        notification_enabled: bool = True,
    ) -> User:
        user = User(email=email, name="Test Cook", notification_enabled=notification_enabled)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_item(db):
    """Factory for food items expiring a number of days from today."""

    def _make_item(
        user: User,
        name: str,
        days: int = 2,
        status: FoodItemStatus = FoodItemStatus.ACTIVE,
    ) -> FoodItem:
        item = FoodItem(
            user_id=user.id,
            name=name,
            expiry_date=utc_today() + timedelta(days=days),
            status=status,
        )
        db.add(item)
        db.commit()
        db.refresh(item)
        return item

    return _make_item


@pytest.fixture
def add_subscription(db):
    """Factory for active push subscriptions."""

    def _add_subscription(user: User, endpoint: str = "https://push.example.com/abc"):
        sub = PushSubscription(
            user_id=user.id,
            endpoint=endpoint,
            p256dh_key="p256dh",
            auth_key="auth",
        )
        db.add(sub)
        db.commit()
        db.refresh(sub)
        return sub

    return _add_subscription


@pytest.fixture
def mock_llm():
    """LLM service whose generate_recipes returns three recipes."""
    llm = MagicMock()
    llm.generate_recipes = AsyncMock(return_value=make_generation())
    return llm


@pytest.fixture
def notification_service(db, settings):
    """Real notification service with email delivery stubbed out."""
    service = NotificationService(db, settings)
    service.send_email = AsyncMock(return_value=True)
    return service


@pytest.fixture
def suggestion_service(db, settings, mock_llm, notification_service):
    """Orchestrator wired to the mock LLM and the stubbed notifier."""
    return RecipeSuggestionService(
        db,
        settings=settings,
        llm_service=mock_llm,
        notification_service=notification_service,
    )


@pytest.fixture(scope="function")
def client(db, suggestion_service):
    """Create a test client with database and service overrides."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_recipe_suggestion_service] = lambda: suggestion_service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def quiet_client(client):
    """Test client that returns 500 responses instead of re-raising server errors."""
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(make_user):
    """Create a user and return auth headers with user info."""
    user = make_user()
    token = create_access_token(user.id, user.email)
    return AuthHeaders({"Authorization": f"Bearer {token}"}, user_id=user.id)


@pytest.fixture
def service_headers():
    """Auth headers for the scheduled batch caller."""
    return {"Authorization": f"Bearer {SERVICE_KEY}"}
