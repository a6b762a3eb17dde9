# tests/conftest.py
from __future__ import annotations

import base64
from contextlib import asynccontextmanager
from typing import Dict, List

import pytest
from botocore.exceptions import EndpointConnectionError
from httpx import ASGITransport, AsyncClient
from kombu.exceptions import OperationalError

from vidshare.config import Settings
from vidshare.database import build_engine, create_tables
from vidshare.main import create_app


# Make anyio run on asyncio (so our async fixtures work everywhere)
@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


class InMemoryObjectStore:
    """Object store double with the same surface as S3ObjectStore."""

    def __init__(self, base_url: str = "https://cdn.example.com", bucket: str = "test-videos"):
        self.base_url = base_url
        self.bucket = bucket
        self.objects: Dict[str, bytes] = {}
        self.deleted: List[str] = []
        self.fail_put = False
        self.fail_delete = False

    def location(self):
        return {"bucket": self.bucket, "region": "us-east-1", "endpoint_url": None}

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    def put(self, key: str, data: bytes, content_type: str = "video/mp4") -> str:
        if self.fail_put:
            raise EndpointConnectionError(endpoint_url=self.base_url)
        self.objects[key] = data
        return self.url_for(key)

    def delete(self, key: str) -> None:
        if self.fail_delete:
            raise EndpointConnectionError(endpoint_url=self.base_url)
        self.objects.pop(key, None)
        self.deleted.append(key)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        DATABASE_URL="sqlite+aiosqlite://",
        JWT_SECRET="test-secret",
        BCRYPT_ROUNDS=4,
        CDN_BASE_URL="https://cdn.example.com",
        STORE_TIMEOUT_SECONDS=5.0,
        RATE_LIMIT_ENABLED=False,
        CELERY_BROKER_URL="memory://",
        CELERY_RESULT_BACKEND="cache+memory://",
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def object_store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


class TaskQueueDouble:
    """Records tasks sent by name instead of publishing them to a broker."""

    def __init__(self):
        self.sent: List[tuple] = []
        self.fail = False

    def send_task(self, name, args=None, kwargs=None, **options):
        if self.fail:
            raise OperationalError("Error 111 connecting to broker. Connection refused.")
        self.sent.append((name, list(args or ()), dict(kwargs or {})))


@pytest.fixture
def task_queue() -> TaskQueueDouble:
    return TaskQueueDouble()


@pytest.fixture
async def app(settings, object_store, task_queue):
    engine = build_engine(settings.DATABASE_URL)
    await create_tables(engine)
    application = create_app(settings, object_store=object_store, engine=engine, celery_app=task_queue)
    yield application
    await engine.dispose()


@asynccontextmanager
async def app_client(settings: Settings, object_store=None):
    """Client for a separately built app, e.g. one with different settings."""
    engine = build_engine(settings.DATABASE_URL)
    await create_tables(engine)
    application = create_app(
        settings,
        object_store=object_store or InMemoryObjectStore(),
        engine=engine,
        celery_app=TaskQueueDouble(),
    )
    try:
        async with AsyncClient(transport=ASGITransport(app=application), base_url="http://test") as c:
            yield c
    finally:
        await engine.dispose()


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture
async def db(app):
    async with app.state.session_factory() as session:
        yield session


def video_b64(content: bytes = b"\x00\x00\x00\x18ftypmp42 fake video") -> str:
    return base64.b64encode(content).decode("ascii")


async def register_and_login(client, username="alice", password="s3cret-pass", role="creator") -> str:
    r = await client.post("/api/register", json={"username": username, "password": password, "role": role})
    assert r.status_code == 201, r.text
    r = await client.post("/api/login", json={"username": username, "password": password})
    assert r.status_code == 200, r.text
    return r.json()["token"]
