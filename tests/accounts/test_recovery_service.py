"""
Tests for temporary-password recovery.
"""

import re
from datetime import timedelta

import pytest

from accounts.login import LoginService
from accounts.models import LoginOutcome
from accounts.recovery import RECOVERY_RESPONSE_MESSAGE, RecoveryService
from utilities.errors import DeliveryError, InvalidInputError


def extract_password(body: str) -> str:
    match = re.search(r"temporary password is: (\S+)", body)
    assert match, body
    return match.group(1)


class TestRecoveryService:
    """Test cases for RecoveryService."""

    @pytest.fixture
    def recovery(self, store, hasher, mock_mailer, audit, clock):
        return RecoveryService(
            store, hasher, mock_mailer, ttl=timedelta(minutes=10), audit=audit, clock=clock
        )

    @pytest.fixture
    def login(self, store, policy, hasher, tokens, audit, clock):
        return LoginService(store, policy, hasher, tokens, audit, clock)

    @pytest.mark.asyncio
    async def test_same_response_for_known_and_unknown(self, recovery, make_user):
        await make_user("A001", "Secret123")

        known = await recovery.issue_recovery("a001@example.com")
        unknown = await recovery.issue_recovery("ghost@example.com")

        assert known == unknown == RECOVERY_RESPONSE_MESSAGE

    @pytest.mark.asyncio
    async def test_unknown_account_sends_nothing(self, recovery, mock_mailer):
        await recovery.issue_recovery("ghost@example.com")
        mock_mailer.send_mail.assert_not_called()

    @pytest.mark.asyncio
    async def test_issues_temporary_password(self, recovery, make_user, fetch_user, mock_mailer, clock):
        await make_user("A001", "Secret123")

        await recovery.issue_recovery("a001@example.com")

        mock_mailer.send_mail.assert_awaited_once()
        recipient, subject, body = mock_mailer.send_mail.await_args.args
        assert recipient == "a001@example.com"
        assert "10 minutes" in subject
        temporary = extract_password(body)
        assert len(temporary) == 8

        user = await fetch_user("A001")
        assert user.temp_credential_expiry == clock.now + timedelta(minutes=10)

    @pytest.mark.asyncio
    async def test_lookup_by_handle(self, recovery, make_user, mock_mailer):
        await make_user("A001", "Secret123")

        await recovery.issue_recovery("A001")

        assert mock_mailer.send_mail.await_args.args[0] == "a001@example.com"

    @pytest.mark.asyncio
    async def test_recovery_clears_lockout(self, recovery, login, make_user, fetch_user, mock_mailer):
        await make_user("A001", "Secret123")
        for _ in range(3):
            await login.attempt_login("A001", "wrong")

        await recovery.issue_recovery("a001@example.com")

        user = await fetch_user("A001")
        assert user.failed_attempts == 0
        assert user.lockout_until is None

        temporary = extract_password(mock_mailer.send_mail.await_args.args[2])
        result = await login.attempt_login("A001", temporary)
        assert result.outcome == LoginOutcome.SUCCESS

    @pytest.mark.asyncio
    async def test_old_password_stops_working(self, recovery, login, make_user):
        await make_user("A001", "Secret123")

        await recovery.issue_recovery("a001@example.com")

        result = await login.attempt_login("A001", "Secret123")
        assert result.outcome == LoginOutcome.INVALID_CREDENTIAL

    @pytest.mark.asyncio
    async def test_temporary_password_expires(self, recovery, login, make_user, mock_mailer, clock):
        await make_user("A001", "Secret123")
        await recovery.issue_recovery("a001@example.com")
        temporary = extract_password(mock_mailer.send_mail.await_args.args[2])

        clock.advance(minutes=11)
        result = await login.attempt_login("A001", temporary)

        assert result.outcome == LoginOutcome.EXPIRED_TEMPORARY

    @pytest.mark.asyncio
    async def test_delivery_failure_raises(self, recovery, make_user, mock_mailer):
        await make_user("A001", "Secret123")
        mock_mailer.send_mail.return_value = False

        with pytest.raises(DeliveryError):
            await recovery.issue_recovery("a001@example.com")

    @pytest.mark.asyncio
    async def test_blank_identifier_rejected(self, recovery):
        with pytest.raises(InvalidInputError):
            await recovery.issue_recovery("   ")
