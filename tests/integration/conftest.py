from datetime import datetime
from typing import List, Tuple

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from limits.aio.storage import MemoryStorage
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from src.adapter.repositories.post_repository import PostRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.api.utils.uploads import UploadValidator
from src.app.services.notifier import Notifier
from src.depends import (
    get_notifier,
    get_rate_limit_storage,
    get_unit_of_work,
    get_upload_validator,
)
from src.domain.entities import Post


class RecordingNotifier(Notifier):
    """Keeps dispatched codes so tests can play the user's inbox"""

    def __init__(self):
        self.sent: List[Tuple[str, str, datetime]] = []

    async def send_otp(self, email: str, code: str, expires_at: datetime) -> None:
        self.sent.append((email, code, expires_at))

    def last_code_for(self, email: str) -> str:
        return [code for sent_to, code, _ in self.sent if sent_to == email][-1]


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite:///./test.db")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine):
    Session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with Session() as session:
        yield session


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def upload_validator(tmp_path):
    return UploadValidator(str(tmp_path / "uploads"), max_bytes=64 * 1024)


@pytest.fixture
def rate_limit_storage():
    return MemoryStorage()


@pytest_asyncio.fixture
async def client(db_session, notifier, upload_validator, rate_limit_storage):
    from src.api.app import create_app
    from config import ApplicationConfig

    app = create_app(ApplicationConfig)

    async def override_get_unit_of_work():
        yield SqlAlchemyUnitOfWork(db_session)

    app.dependency_overrides[get_unit_of_work] = override_get_unit_of_work
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_upload_validator] = lambda: upload_validator
    app.dependency_overrides[get_rate_limit_storage] = lambda: rate_limit_storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def register_user(client):
    async def register(email: str = "user@example.com", password: str = "SecurePass123") -> dict:
        response = await client.post("/auth/register", json={
            "name": "Test User",
            "email": email,
            "password": password,
        })
        assert response.status_code == 201, response.text
        return response.json()

    return register


@pytest_asyncio.fixture
async def auth(register_user):
    """Registered user's response payload (user + access_token)"""
    return await register_user()


@pytest.fixture
def auth_headers(auth):
    return {"Authorization": f"Bearer {auth['access_token']}"}


@pytest_asyncio.fixture
async def post(db_session, auth):
    from uuid import UUID

    post = await PostRepository(db_session).create(
        Post(
            title="Need a landing page",
            content="Looking for a freelancer",
            category="web",
            posted_by=UUID(auth["user"]["id"]),
        )
    )
    await db_session.commit()
    return post
