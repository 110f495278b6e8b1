from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Iterator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from app.config import get_settings
from app.db.models import Snippet, User
from app.db.session import dispose_engine, get_sessionmaker, init_db
from app.domain.tags import join_tags
from app.domain.visibility import Visibility
from app.main import app
from app.observability.metrics import reset_metrics
from app.services.auth_service import hash_password


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Iterator[None]:
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'snipper.db'}")
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    monkeypatch.setenv("ENABLE_METRICS_ENDPOINT", "true")
    get_settings.cache_clear()
    dispose_engine()
    init_db()
    reset_metrics()

    yield

    dispose_engine()
    get_settings.cache_clear()


@pytest.fixture
def db() -> Iterator[Session]:
    session = get_sessionmaker()()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    def _make(username: str, email: str | None = None, password: str = "password123", active: bool = True) -> User:
        user = User(
            username=username,
            email=email or f"{username}@example.com",
            password_hash=hash_password(password),
            is_active=active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_snippet(db: Session) -> Callable[..., Snippet]:
    def _make(
        author: User,
        title: str = "Snippet",
        visibility: Visibility = Visibility.PUBLIC,
        language: str = "python",
        tags: list[str] | None = None,
        content: str = "print('hello')",
        description: str | None = None,
        view_count: int = 0,
    ) -> Snippet:
        snippet = Snippet(
            title=title,
            description=description,
            content=content,
            language=language,
            tags=join_tags(tags or []),
            visibility=visibility,
            view_count=view_count,
            author_id=author.id,
        )
        db.add(snippet)
        db.commit()
        db.refresh(snippet)
        return snippet

    return _make


@pytest.fixture
async def api_client() -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
