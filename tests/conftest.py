"""Shared pytest fixtures for backend tests."""

import os
import sys
from typing import AsyncGenerator
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Settings are read at import time, so configure them before importing the app
os.environ.update(
    {
        "DB_SERVER": "localhost",
        "DB_NAME": "articles_test",
        "DB_USER": "articles",
        "DB_PASSWORD": "articles",
        "JWT_SECRET": "test-secret-key",
        "BCRYPT_ROUNDS": "5",
        "STORAGE_BACKEND": "minio",
        "REFERENCE_DOWNLOAD_STRATEGY": "redirect",
    }
)

from article_admin.database import Base, get_db
from article_admin.main import app
from article_admin.models import Article, ArticleReference, User
from article_admin.services.auth_service import create_access_token
from article_admin.services.storage import get_storage_service


def get_test_password_hash(password: str) -> str:
    """
    Generate a password hash for testing.

    Uses bcrypt directly with a work factor below BCRYPT_ROUNDS, so logins
    in tests also exercise the rehash path.
    """
    import bcrypt
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")


# Use in-memory SQLite for testing
SQLALCHEMY_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def engine():
    """Create a test database engine with SQLite."""
    engine = create_async_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Enable foreign key support for SQLite
    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_maker() as session:
        yield session


@pytest.fixture
def mock_storage() -> MagicMock:
    """Create a mock storage backend."""
    storage = MagicMock()
    storage.upload_article_reference.return_value = "report-65f1c2a9b3d4e.pdf"
    storage.get_presigned_download_url.return_value = "https://storage.example.com/signed-url"
    storage.open_stream.return_value = iter([b"%PDF-1.4 ", b"reference content"])
    storage.delete_file.return_value = True
    return storage


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, mock_storage: MagicMock) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database and storage dependency overrides."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_service] = lambda: mock_storage

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()


async def _create_user(db_session: AsyncSession, email: str, password: str, is_admin: bool = False) -> User:
    user = User(
        id=uuid4(),
        email=email,
        password_hash=get_test_password_hash(password),
        display_name=email.split("@")[0],
        is_admin=is_admin,
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user who authors the test article."""
    return await _create_user(db_session, "author@example.com", "TestPassword123!")


@pytest_asyncio.fixture
async def test_user_2(db_session: AsyncSession) -> User:
    """Create a second test user without rights on the test article."""
    return await _create_user(db_session, "outsider@example.com", "TestPassword456!")


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    """Create an admin user who may manage every article."""
    return await _create_user(db_session, "admin@example.com", "AdminPassword789!", is_admin=True)


def _auth_headers(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "email": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Create authorization headers for the article author."""
    return _auth_headers(test_user)


@pytest.fixture
def auth_headers_2(test_user_2: User) -> dict:
    """Create authorization headers for the second user."""
    return _auth_headers(test_user_2)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    """Create authorization headers for the admin user."""
    return _auth_headers(admin_user)


@pytest_asyncio.fixture
async def test_article(db_session: AsyncSession, test_user: User) -> Article:
    """Create a test article authored by test_user."""
    article = Article(
        id=uuid4(),
        title="Test Article",
        author_id=test_user.id,
    )
    db_session.add(article)
    await db_session.commit()
    return article


@pytest_asyncio.fixture
async def test_references(db_session: AsyncSession, test_article: Article) -> list[ArticleReference]:
    """
    Create three references on the test article.

    Returned in creation order (A, B, C) with positions 2, 0, 1.
    """
    references = []
    for name, position in (("a", 2), ("b", 0), ("c", 1)):
        reference = ArticleReference(
            id=uuid4(),
            article_id=test_article.id,
            filename=f"{name}-65f1c2a9b3d4e.pdf",
            original_filename=f"{name.upper()} report.pdf",
            mime_type="application/pdf",
            position=position,
        )
        db_session.add(reference)
        references.append(reference)
    await db_session.commit()
    return references
