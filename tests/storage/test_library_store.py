"""
Tests for the relational store.
"""

import pytest
from sqlalchemy.exc import OperationalError
from structlog.testing import capture_logs

from storage.database import LibraryStore
from utilities.errors import TransientStoreError


class TestLibraryStore:
    """Test cases for LibraryStore."""

    @pytest.mark.asyncio
    async def test_health_check(self, store, make_user):
        await make_user("A001")

        health = await store.health_check()

        assert health["status"] == "healthy"
        assert health["users_count"] == 1
        assert health["books_count"] == 0

    @pytest.mark.asyncio
    async def test_operational_failure_is_logged_and_transient(self, store):
        with capture_logs() as logs:
            with pytest.raises(TransientStoreError):
                async with store.transaction():
                    raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        errors = [entry for entry in logs if entry["event"] == "Store operation failed"]
        assert len(errors) == 1
        assert errors[0]["operation"] == "transaction"
        assert errors[0]["error_type"] == "OperationalError"
        assert "database is locked" in errors[0]["error"]

    @pytest.mark.asyncio
    async def test_transaction_requires_connect(self, library_config):
        with pytest.raises(RuntimeError):
            async with LibraryStore(library_config.database_url).transaction():
                pass
