import os
import tempfile

os.environ.setdefault("STATIC_DIR", tempfile.mkdtemp(prefix="static-"))
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="logs-"))
os.environ.setdefault("DB_URL", "sqlite://:memory:")

import fakeredis
import pytest
from fakeredis import aioredis
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from api.deps import get_typing_service
from core.security import create_access_token
from init_db import MODEL_MODULES, close_db, init_db, init_db_data
from services.typing_service import TypingService
from services.user_service import UserService

TEST_DB = {
    "connections": {"default": "sqlite://:memory:"},
    "apps": {"models": {"models": MODEL_MODULES, "default_connection": "default"}},
}


@pytest.fixture
async def db():
    await init_db(TEST_DB)
    await init_db_data()
    yield
    await close_db()


@pytest.fixture
async def customer(db):
    return await UserService.get_or_create_user("alice@example.com", "Alice Martin")


@pytest.fixture
async def other_customer(db):
    return await UserService.get_or_create_user("carol@example.com", "Carol Dubois")


@pytest.fixture
async def staff(db):
    return await UserService.get_or_create_user("bob@example.com", "Bob Support", role_name="support")


@pytest.fixture
def fake_redis():
    return aioredis.FakeRedis(decode_responses=True)


@pytest.fixture
async def client(db, fake_redis):
    from main import app

    app.dependency_overrides[get_typing_service] = lambda: TypingService(client=fake_redis)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def live_client():
    """Runs the app lifespan (ORM on DB_URL, seeded roles) in the client's own event loop."""
    from main import app

    server = fakeredis.FakeServer()
    app.dependency_overrides[get_typing_service] = lambda: TypingService(
        client=aioredis.FakeRedis(server=server, decode_responses=True)
    )
    with TestClient(app) as tc:
        yield tc
    app.dependency_overrides.clear()


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}
