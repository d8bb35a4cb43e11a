"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy import select

from accounts.lockout import LockoutPolicy
from accounts.mailer import SMTPMailer
from accounts.security import PasswordHasher, TokenIssuer
from storage.database import LibraryStore
from storage.models import BookKind, BookRecord, Role, UserRecord
from utilities.config import LibraryConfig
from utilities.logger import AuditLogger


class FakeClock:
    """Settable clock for time-dependent tests."""

    def __init__(self, start: datetime = datetime(2025, 3, 10, 9, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    """Clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def library_config(tmp_path):
    """Configuration pointing at a temporary SQLite database and upload dir."""
    return LibraryConfig(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{(tmp_path / 'library.db').as_posix()}",
        jwt_secret_key="test-secret-key",
        bcrypt_rounds=4,
        upload_dir=str(tmp_path / "uploads"),
        smtp_host="smtp.test",
        log_format="console",
    )


@pytest_asyncio.fixture
async def store(library_config):
    """Connected store on a fresh database."""
    library_store = LibraryStore(library_config.database_url)
    await library_store.connect()
    yield library_store
    await library_store.disconnect()


@pytest.fixture
def hasher():
    """Fast bcrypt hasher."""
    return PasswordHasher(rounds=4)


@pytest.fixture
def tokens():
    """Session token issuer."""
    return TokenIssuer(secret_key="test-secret-key", ttl=timedelta(hours=1))


@pytest.fixture
def policy():
    """Default lockout policy: 3 attempts, 5 minutes."""
    return LockoutPolicy(max_failed_attempts=3, cooldown=timedelta(minutes=5))


@pytest.fixture
def audit():
    """Audit logger."""
    return AuditLogger()


@pytest.fixture
def mock_mailer():
    """Create a mock mail sender that accepts every message."""
    mailer = AsyncMock(spec=SMTPMailer)
    mailer.send_mail.return_value = True
    return mailer


@pytest.fixture
def make_user(store, hasher):
    """Factory inserting a user row."""

    async def _make_user(handle="A001", password="Secret123", role=Role.STUDENT, contact=None):
        async with store.transaction() as session:
            user = UserRecord(
                handle=handle,
                contact=contact or f"{handle.lower()}@example.com",
                credential_hash=hasher.hash(password),
                role=role,
                failed_attempts=0,
            )
            session.add(user)
            await session.flush()
        return user

    return _make_user


@pytest.fixture
def make_book(store):
    """Factory inserting a book row."""

    async def _make_book(title="Dune", author="Frank Herbert", kind=BookKind.PHYSICAL, copies=1):
        async with store.transaction() as session:
            book = BookRecord(
                title=title,
                author=author,
                category="Fiction",
                kind=kind,
                copies_available=copies,
                publication_year=1965,
            )
            session.add(book)
            await session.flush()
        return book

    return _make_book


@pytest.fixture
def fetch_user(store):
    """Read a user row by handle."""

    async def _fetch_user(handle):
        async with store.transaction() as session:
            return await session.scalar(select(UserRecord).where(UserRecord.handle == handle))

    return _fetch_user


@pytest.fixture
def fetch_book(store):
    """Read a book row by id."""

    async def _fetch_book(book_id):
        async with store.transaction() as session:
            return await session.get(BookRecord, book_id)

    return _fetch_book
