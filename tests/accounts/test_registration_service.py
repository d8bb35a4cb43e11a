"""
Tests for account registration and librarian management.
"""

import pytest

from accounts.registration import RegistrationService
from storage.models import Role
from utilities.errors import ConflictError, InvalidInputError


class TestRegistrationService:
    """Test cases for RegistrationService."""

    @pytest.fixture
    def registration(self, store, hasher):
        return RegistrationService(store, hasher)

    @pytest.mark.asyncio
    async def test_register_creates_student(self, registration, fetch_user, hasher):
        account = await registration.register(" S100 ", "Student@Example.com", "Secret123")

        assert account.handle == "S100"
        assert account.contact == "student@example.com"
        assert account.role == Role.STUDENT

        user = await fetch_user("S100")
        assert user.failed_attempts == 0
        assert hasher.verify("Secret123", user.credential_hash)

    @pytest.mark.asyncio
    async def test_duplicate_handle(self, registration):
        await registration.register("S100", "one@example.com", "Secret123")

        with pytest.raises(ConflictError, match="Handle"):
            await registration.register("S100", "two@example.com", "Secret123")

    @pytest.mark.asyncio
    async def test_duplicate_contact(self, registration):
        await registration.register("S100", "one@example.com", "Secret123")

        with pytest.raises(ConflictError, match="E-mail"):
            await registration.register("S200", "one@example.com", "Secret123")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("handle,contact,password", [
        ("", "one@example.com", "Secret123"),
        ("S100", "", "Secret123"),
        ("S100", "one@example.com", ""),
        ("S100", "not-an-email", "Secret123"),
    ])
    async def test_missing_fields(self, registration, handle, contact, password):
        with pytest.raises(InvalidInputError):
            await registration.register(handle, contact, password)

    @pytest.mark.asyncio
    async def test_add_and_list_librarians(self, registration):
        await registration.register("S100", "student@example.com", "Secret123")
        await registration.add_librarian("L200", "l200@example.com", "Secret123")
        await registration.add_librarian("L100", "l100@example.com", "Secret123")

        librarians = await registration.list_librarians()

        assert [librarian.handle for librarian in librarians] == ["L100", "L200"]
        assert all(librarian.role == Role.LIBRARIAN for librarian in librarians)

    @pytest.mark.asyncio
    async def test_bootstrap_admin_created_once(self, registration):
        first = await registration.ensure_bootstrap_admin("admin", "admin@example.com", "Admin123")
        second = await registration.ensure_bootstrap_admin("admin2", "admin2@example.com", "Admin123")

        assert first is not None
        assert first.role == Role.ADMINISTRATOR
        assert second is None

    @pytest.mark.asyncio
    async def test_bootstrap_admin_skipped_without_settings(self, registration):
        assert await registration.ensure_bootstrap_admin(None, None, None) is None
