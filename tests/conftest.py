"""
Shared fixtures: a throwaway SQLite database per test, a recording push
sender, and an HTTP client wired to both.
"""

import json
from datetime import date

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from app.core.config import Settings
from app.core.database import get_session
from app.handlers.auth import generate_token
from app.handlers.moderation import ensure_moderation_setting
from app.handlers.notifications import DeliveryError, NotificationDispatcher
from app.handlers.pipeline import MutationPipeline
from app.models.dog import Dog, DogStatus, Sex
from app.models.edit_token import EditToken
from app.models.media import Media, MediaStatus
from app.models.owner import Owner
from app.models.push_subscription import PushSubscription
from main import app

ADMIN_KEY = "test-admin-key"
ADMIN_HEADERS = {"X-Admin-Key": ADMIN_KEY}


class FakePushSender:
    """Records deliveries; endpoints listed in ``failures`` are refused with that status."""

    public_key = "test-public-key"

    def __init__(self):
        self.sent = []
        self.failures = {}

    async def send(self, endpoint, keys, data):
        if endpoint in self.failures:
            raise DeliveryError("refused", self.failures[endpoint])
        self.sent.append({"endpoint": endpoint, "keys": keys, "payload": json.loads(data)})


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        ADMIN_API_KEY=ADMIN_KEY,
        ADMIN_NAME="Louise",
        FRONTEND_URL="https://dogs.example",
        BACKEND_URL="https://admin.dogs.example",
        FRONTEND_BUILD_HOOK_URL=None,
        VAPID_PUBLIC_KEY="test-public-key",
        VAPID_PRIVATE_KEY="test-private-key",
    )


@pytest_asyncio.fixture
async def session_factory(settings):
    engine = create_async_engine(settings.database_url)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    factory = async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)
    async with factory() as session:
        await ensure_moderation_setting(session, "auto_approve")

    yield factory
    await engine.dispose()


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def sender():
    return FakePushSender()


@pytest.fixture
def pipeline(settings, sender, session_factory):
    return MutationPipeline(settings, NotificationDispatcher(sender, session_factory), session_factory)


@pytest_asyncio.fixture
async def client(session_factory, pipeline):
    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.state.pipeline = pipeline

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def owner(session):
    owner = Owner(name="Camille", email="camille@example.com")
    session.add(owner)
    await session.commit()
    await session.refresh(owner)
    return owner


@pytest_asyncio.fixture
async def dog(session, owner):
    dog = Dog(
        name="S1",
        sex=Sex.FEMALE,
        birthday=date(2019, 4, 2),
        breed="Labrador",
        coat="black",
        owner_id=owner.id,
        status=DogStatus.APPROVED,
    )
    session.add(dog)
    await session.commit()
    await session.refresh(dog)
    return dog


@pytest.fixture
def make_media(session):
    async def _make(dog, is_featured=False, status=MediaStatus.APPROVED, name=None):
        media = Media(dog_id=dog.id, file=f"{name or 'photo'}.jpg", name=name, is_featured=is_featured, status=status)
        session.add(media)
        await session.commit()
        await session.refresh(media)
        return media
    return _make


@pytest.fixture
def make_token(session):
    async def _make(label="Family A", is_active=True, expires_at=None):
        token = EditToken(label=label, token=generate_token(), is_active=is_active, expires_at=expires_at)
        session.add(token)
        await session.commit()
        await session.refresh(token)
        return token
    return _make


@pytest.fixture
def make_subscription(session):
    async def _make(endpoint, admin=True):
        subscription = PushSubscription(
            endpoint=endpoint,
            keys=json.dumps({"p256dh": "key", "auth": "secret"}),
            receives_admin_notifications=admin,
        )
        session.add(subscription)
        await session.commit()
        await session.refresh(subscription)
        return subscription
    return _make
