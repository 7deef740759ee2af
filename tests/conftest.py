"""Test fixtures and configuration."""

import os
from collections.abc import AsyncGenerator
from datetime import datetime
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

# Set test environment before importing app
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only-12345678"
os.environ["DEBUG"] = "true"
os.environ["REDIS_URL"] = "memory://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SENDGRID_API_KEY"] = ""
os.environ["ADMIN_PASSWORD"] = ""

from auth import create_access_token, get_password_hash
from database import Base, build_engine, get_db
from main import app
from models import Product, Quote, User
from services.notifications import EmailMessage, MailConfig, NotificationDispatcher, get_dispatcher


# Test database engine (single shared in-memory connection)
test_engine = build_engine("sqlite+aiosqlite:///:memory:")

TestAsyncSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
    """Override database dependency for testing."""
    async with TestAsyncSessionLocal() as session:
        yield session


app.dependency_overrides[get_db] = override_get_db


class RecordingTransport:
    """Mail transport that keeps delivered messages in memory."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.messages: list[EmailMessage] = []

    async def deliver(self, message: EmailMessage) -> None:
        if self.fail:
            raise RuntimeError("mail provider unavailable")
        self.messages.append(message)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create database tables and provide a session."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestAsyncSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    # The pooled aiosqlite connection is bound to this test's event loop
    await test_engine.dispose()


@pytest.fixture
def mail_transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def dispatcher(mail_transport: RecordingTransport) -> NotificationDispatcher:
    """Configured dispatcher whose deliveries land in ``mail_transport``."""
    config = MailConfig(api_key="SG.test-key", sender="quotes@example.com", timeout=5.0)
    return NotificationDispatcher(config, mail_transport)


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession, dispatcher: NotificationDispatcher
) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.pop(get_dispatcher, None)


async def _create_user(db: AsyncSession, email: str, password: str, role: str, **kwargs) -> User:
    user = User(
        email=email,
        hashed_password=get_password_hash(password),
        name=kwargs.pop("name", "Test User"),
        role=role,
        **kwargs,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a regular (non-admin) user."""
    return await _create_user(db_session, "test@example.com", "TestPass123", "user")


@pytest_asyncio.fixture
async def test_admin(db_session: AsyncSession) -> User:
    """Create a test admin user."""
    return await _create_user(
        db_session, "admin@example.com", "AdminPass123", "admin", name="Admin User"
    )


@pytest.fixture
def admin_headers(test_admin: User) -> dict:
    return get_auth_headers(test_admin)


@pytest.fixture
def user_headers(test_user: User) -> dict:
    return get_auth_headers(test_user)


@pytest_asyncio.fixture
async def test_product(db_session: AsyncSession) -> Product:
    product = Product(
        name="Drip Line 16mm",
        category="drip_irrigation",
        model="DL-16",
        description="Pressure compensating drip line",
        price=Decimal("4500.00"),
        features=["UV resistant"],
        specifications={"diameter": "16mm", "spacing_cm": 30},
        stock_quantity=25,
    )
    db_session.add(product)
    await db_session.commit()
    await db_session.refresh(product)
    return product


@pytest_asyncio.fixture
async def test_quote(db_session: AsyncSession) -> Quote:
    """Create a pending quote without pricing."""
    quote = Quote(
        customer_name="John Kamau",
        customer_email="john@example.com",
        customer_phone="+254712345678",
        project_type="Drip Irrigation",
        area_size="2 acres",
        crop_type="Tomatoes",
        location="Nakuru",
        water_source="Borehole",
        distance_to_farm="200m",
        requirements="Greenhouse and open field",
        status="pending",
    )
    db_session.add(quote)
    await db_session.commit()
    await db_session.refresh(quote)
    return quote


def make_quote(**overrides) -> Quote:
    """Unsaved quote with a fixed creation date, for document rendering."""
    values = dict(
        id=42,
        customer_name="Mary Wanjiku",
        customer_email="mary@example.com",
        customer_phone="+254700000001",
        project_type="Drip Irrigation",
        area_size="1 acre",
        crop_type="Kale",
        location="Kiambu",
        water_source="River",
        distance_to_farm="50m",
        requirements=None,
        notes=None,
        soil_type=None,
        number_of_beds=None,
        budget_range=None,
        total_amount=None,
        currency="KSH",
        items=[],
        created_at=datetime(2026, 1, 15, 9, 30),
    )
    values.update(overrides)
    return Quote(**values)


def get_auth_headers(user: User) -> dict:
    """Generate auth headers for a user."""
    token = create_access_token(user.id, email=user.email, role=user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def quote_factory():
    return make_quote
