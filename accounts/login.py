"""
Login evaluation with attempt throttling and temporary lockout.
"""

import asyncio
from datetime import datetime
from typing import Callable, Optional

import structlog
from sqlalchemy import select

from accounts.lockout import LockoutPolicy
from accounts.models import (
    EXPIRED_TEMPORARY_MESSAGE,
    INVALID_CREDENTIAL_MESSAGE,
    LOCKED_MESSAGE,
    SUCCESS_MESSAGE,
    LoginOutcome,
    LoginResult,
)
from accounts.security import PasswordHasher, TokenIssuer
from storage.database import LibraryStore
from storage.models import UserRecord
from utilities.errors import AuthenticationError, InvalidInputError, NotFoundError
from utilities.logger import AuditLogger

logger = structlog.get_logger(__name__)


class LoginService:
    """
    Evaluates login attempts against the credential store.

    Every attempt is a single read-modify-write on the user row: the row is
    selected FOR UPDATE, the lockout policy is applied, the credential is
    compared and the counters are written back before the transaction
    commits.
    """

    def __init__(
        self,
        store: LibraryStore,
        policy: LockoutPolicy,
        hasher: PasswordHasher,
        tokens: TokenIssuer,
        audit: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.policy = policy
        self.hasher = hasher
        self.tokens = tokens
        self.audit = audit or AuditLogger()
        self.clock = clock or datetime.utcnow

    async def attempt_login(self, handle: str, password: str) -> LoginResult:
        """
        Evaluate one login attempt.

        Args:
            handle: Login handle (enrollment number)
            password: Supplied password

        Returns:
            LoginResult with outcome success, invalid_credential, locked
            or expired_temporary
        """
        handle = (handle or "").strip()
        password = password or ""
        if not handle or not password:
            raise InvalidInputError("Handle and password are required.")

        now = self.clock()

        async with self.store.transaction() as session:
            user = await session.scalar(
                select(UserRecord).where(UserRecord.handle == handle).with_for_update()
            )

            if user is None:
                await asyncio.to_thread(self.hasher.verify_dummy, password)
                self.audit.log_login_attempt(handle, LoginOutcome.INVALID_CREDENTIAL.value, known=False)
                return LoginResult(
                    outcome=LoginOutcome.INVALID_CREDENTIAL,
                    message=INVALID_CREDENTIAL_MESSAGE,
                )

            if self.policy.is_locked(user, now):
                retry_after = self.policy.seconds_remaining(user, now)
                self.audit.log_login_attempt(handle, LoginOutcome.LOCKED.value, retry_after_seconds=retry_after)
                return LoginResult(
                    outcome=LoginOutcome.LOCKED,
                    message=LOCKED_MESSAGE,
                    retry_after_seconds=retry_after,
                )

            if self.policy.cooldown_elapsed(user, now):
                logger.info("Lockout window elapsed, resetting counters", user_id=user.id)
                self.policy.reset(user)

            matched = await asyncio.to_thread(self.hasher.verify, password, user.credential_hash)

            if matched:
                expiry = user.temp_credential_expiry
                if expiry is not None and now > expiry:
                    # The expired temporary password must never work again.
                    user.temp_credential_expiry = None
                    user.credential_hash = await asyncio.to_thread(self.hasher.unusable_hash)
                    self.audit.log_login_attempt(handle, LoginOutcome.EXPIRED_TEMPORARY.value, user_id=user.id)
                    return LoginResult(
                        outcome=LoginOutcome.EXPIRED_TEMPORARY,
                        message=EXPIRED_TEMPORARY_MESSAGE,
                    )

                self.policy.reset(user)
                user.temp_credential_expiry = None
                token = self.tokens.issue(user.id, user.role)
                self.audit.log_login_attempt(handle, LoginOutcome.SUCCESS.value, user_id=user.id)
                return LoginResult(
                    outcome=LoginOutcome.SUCCESS,
                    message=SUCCESS_MESSAGE,
                    token=token,
                    user_id=user.id,
                    role=user.role,
                )

            if self.policy.record_failure(user, now):
                self.audit.log_lockout(user.id, user.failed_attempts, self.policy.cooldown_seconds)
                return LoginResult(
                    outcome=LoginOutcome.LOCKED,
                    message=LOCKED_MESSAGE,
                    retry_after_seconds=self.policy.cooldown_seconds,
                )

            remaining = self.policy.remaining_attempts(user)
            self.audit.log_login_attempt(
                handle,
                LoginOutcome.INVALID_CREDENTIAL.value,
                user_id=user.id,
                remaining_attempts=remaining,
            )
            return LoginResult(
                outcome=LoginOutcome.INVALID_CREDENTIAL,
                message=INVALID_CREDENTIAL_MESSAGE,
                remaining_attempts=remaining,
            )

    async def change_password(self, user_id: int, current_password: str, new_password: str) -> None:
        """
        Replace a user's password after checking the current one.

        Clears any temporary-password expiry and the failure counters.

        Raises:
            InvalidInputError: If the new password is empty or too long
            AuthenticationError: If the current password does not match
            NotFoundError: If the account no longer exists
        """
        if not new_password:
            raise InvalidInputError("New password is required.")

        new_hash = await asyncio.to_thread(self.hasher.hash, new_password)

        async with self.store.transaction() as session:
            user = await session.scalar(
                select(UserRecord).where(UserRecord.id == user_id).with_for_update()
            )
            if user is None:
                raise NotFoundError("User not found.")

            matched = await asyncio.to_thread(self.hasher.verify, current_password or "", user.credential_hash)
            if not matched:
                logger.warning("Password change rejected", user_id=user_id)
                raise AuthenticationError("Current password is incorrect.")

            user.credential_hash = new_hash
            user.temp_credential_expiry = None
            self.policy.reset(user)

        logger.info("Password changed", user_id=user_id)
