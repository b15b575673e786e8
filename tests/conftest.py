from __future__ import annotations

import os

os.environ.setdefault("TASKBOARD_ENVIRONMENT", "test")
os.environ.setdefault("TASKBOARD_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("TASKBOARD_JWT_SECRET_KEY", "test-secret")

from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from itertools import count

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from taskboard.app.core.config import Settings, get_settings
from taskboard.app.deps import get_commit_lookup, get_db_session
from taskboard.app.errors import UpstreamUnavailableError
from taskboard.app.integrations.github import CommitRecord
from taskboard.app.main import create_app
from taskboard.app.models import User
from taskboard.app.repositories import InMemoryBoardRepository
from taskboard.app.services import BoardService, CommitReconciliationService, UserService


@dataclass
class FakeCommitLookup:
    """Commit lookup returning canned commits and remembering what it was asked.

    ``during_fetch`` runs while a fetch is in flight, before commits are returned.
    """

    commits: list[CommitRecord] = field(default_factory=list)
    error: Exception | None = None
    calls: list[str] = field(default_factory=list)
    during_fetch: Callable[[], Awaitable[None]] | None = None

    async def fetch_commits(self, repo_ref: str) -> list[CommitRecord]:
        self.calls.append(repo_ref)
        if self.during_fetch is not None:
            await self.during_fetch()
        if self.error is not None:
            raise self.error
        return list(self.commits)

    def fail(self) -> None:
        self.error = UpstreamUnavailableError("GitHub is down.")


@dataclass(slots=True)
class AuthenticatedUser:
    user: User
    email: str
    password: str
    access_token: str | None

    @property
    def id(self) -> int:
        assert self.user.id is not None
        return self.user.id

    @property
    def headers(self) -> dict[str, str]:
        if not self.access_token:
            raise RuntimeError("User has not been authenticated.")
        return {"Authorization": f"Bearer {self.access_token}"}


@pytest.fixture()
def settings() -> Settings:
    get_settings.cache_clear()
    return get_settings()


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as db_session:
        yield db_session


@pytest.fixture()
def user_service(session: AsyncSession) -> UserService:
    return UserService(session)


@pytest.fixture()
def make_user(user_service: UserService) -> Callable[..., Awaitable[User]]:
    counter = count()

    async def _factory(email: str | None = None, *, password: str = "StrongPass123!") -> User:
        account = await user_service.create_user(
            email=email or f"member-{next(counter)}@example.com",
            password=password,
        )
        assert account.id is not None
        return account

    return _factory


@pytest.fixture()
def board_repository() -> InMemoryBoardRepository:
    return InMemoryBoardRepository()


@pytest.fixture()
def board_service(
    board_repository: InMemoryBoardRepository,
    user_service: UserService,
    settings: Settings,
) -> BoardService:
    return BoardService(board_repository, user_service, settings)


@pytest.fixture()
def commit_lookup() -> FakeCommitLookup:
    return FakeCommitLookup()


@pytest.fixture()
def commit_service(board_service: BoardService, commit_lookup: FakeCommitLookup) -> CommitReconciliationService:
    return CommitReconciliationService(board_service, commit_lookup)


@pytest_asyncio.fixture
async def app(session: AsyncSession, settings: Settings, commit_lookup: FakeCommitLookup) -> AsyncIterator[FastAPI]:
    application = create_app(settings)

    async def _override_db_session() -> AsyncIterator[AsyncSession]:
        yield session

    application.dependency_overrides[get_db_session] = _override_db_session
    application.dependency_overrides[get_commit_lookup] = lambda: commit_lookup
    try:
        yield application
    finally:
        application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client


@pytest.fixture()
def authenticated_user(
    make_user: Callable[..., Awaitable[User]],
    client: AsyncClient,
) -> Callable[..., Awaitable[AuthenticatedUser]]:
    counter = count()

    async def _factory(*, email: str | None = None, password: str = "StrongPass123!") -> AuthenticatedUser:
        actual_email = email or f"user-{next(counter)}@example.com"
        user = await make_user(actual_email, password=password)
        response = await client.post(
            "/api/auth/login",
            data={"username": actual_email, "password": password},
        )
        assert response.status_code == 200, response.text
        return AuthenticatedUser(
            user=user,
            email=actual_email,
            password=password,
            access_token=response.json()["tokens"]["access_token"],
        )

    return _factory
