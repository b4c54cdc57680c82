import os
import tempfile
import uuid
from typing import AsyncGenerator, Awaitable, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

# Test settings; must be set before docscan.core.config is first imported
os.environ.setdefault("MONGODB_DB_NAME", "docscan_test")
os.environ.setdefault("SECRET_KEY", "test-secret-key-min-32-characters-long")
os.environ.setdefault("STORAGE_LOCAL_PATH", tempfile.mkdtemp(prefix="docscan-test-"))

from docscan.core.security import create_session_cookie  # noqa: E402
from docscan.db.init import init_db  # noqa: E402
from docscan.models.user import ROLE_USER, User  # noqa: E402
from docscan.services.corpus import CorpusStore  # noqa: E402
from docscan.services.users import session_payload_for_user  # noqa: E402
from docscan.storage.local import LocalStorage  # noqa: E402


@pytest_asyncio.fixture
async def db() -> None:
    """Fresh in-memory MongoDB per test."""
    client = AsyncMongoMockClient()
    await init_db(client[f"docscan_test_{uuid.uuid4().hex[:8]}"])


@pytest.fixture
def storage(tmp_path) -> LocalStorage:
    return LocalStorage(tmp_path / "blobs")


@pytest.fixture
def corpus(storage) -> CorpusStore:
    return CorpusStore(storage, timeout=5.0)


@pytest_asyncio.fixture
async def make_user(db) -> Callable[..., Awaitable[User]]:
    async def _make(credits: int = 20, role: str = ROLE_USER, username: str | None = None) -> User:
        name = username or f"user-{uuid.uuid4().hex[:8]}"
        user = User(
            username=name,
            email=f"{name}@example.com",
            password_hash="not-a-real-hash",
            role=role,
            credits=credits,
        )
        await user.insert()
        return user

    return _make


@pytest_asyncio.fixture
async def app(db, corpus):
    from docscan import deps
    from docscan.main import app as fastapi_app
    from docscan.services.scans import ScanOrchestrator

    fastapi_app.dependency_overrides[deps.corpus_store] = lambda: corpus
    fastapi_app.dependency_overrides[deps.scan_orchestrator] = lambda: ScanOrchestrator(corpus=corpus)
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def client_for(app) -> Callable[[User], AsyncClient]:
    """Build an AsyncClient already carrying ``user``'s session cookie. Caller closes it."""
    from docscan.deps import SESSION_COOKIE_NAME

    def _client(user: User) -> AsyncClient:
        cookie = create_session_cookie(session_payload_for_user(user))
        return AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
            cookies={SESSION_COOKIE_NAME: cookie},
        )

    return _client
