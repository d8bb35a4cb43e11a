"""
Password recovery through short-lived temporary passwords.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog
from sqlalchemy import or_, select

from accounts.mailer import SMTPMailer
from accounts.security import PasswordHasher, generate_temporary_password
from storage.database import LibraryStore
from storage.models import UserRecord
from utilities.errors import DeliveryError, InvalidInputError
from utilities.logger import AuditLogger

logger = structlog.get_logger(__name__)

RECOVERY_RESPONSE_MESSAGE = (
    "If the account exists, a temporary password has been sent to its e-mail address."
)
RECOVERY_SUBJECT = "Temporary password ({minutes} minutes)"
RECOVERY_BODY = (
    "We received a request to recover your library account.\n\n"
    "Your temporary password is: {password}\n\n"
    "It is valid for {minutes} minutes. Sign in with it and change it right away.\n"
)


class RecoveryService:
    """Issues temporary passwords and mails them to the account owner."""

    def __init__(
        self,
        store: LibraryStore,
        hasher: PasswordHasher,
        mailer: SMTPMailer,
        ttl: timedelta = timedelta(minutes=10),
        password_length: int = 8,
        audit: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.hasher = hasher
        self.mailer = mailer
        self.ttl = ttl
        self.password_length = password_length
        self.audit = audit or AuditLogger()
        self.clock = clock or datetime.utcnow

    @property
    def ttl_minutes(self) -> int:
        return int(self.ttl.total_seconds() // 60)

    async def issue_recovery(self, identifier: str) -> str:
        """
        Issue a temporary password for the account matching ``identifier``.

        The temporary password replaces the stored one, expires after the
        configured TTL and clears any lockout. The caller receives the same
        message whether or not the account exists.

        Args:
            identifier: E-mail address or login handle

        Returns:
            Generic confirmation message

        Raises:
            DeliveryError: If the account exists but the mail could not be sent
        """
        identifier = (identifier or "").strip()
        if not identifier:
            raise InvalidInputError("An e-mail address or handle is required.")

        temporary_password = generate_temporary_password(self.password_length)
        credential_hash = await asyncio.to_thread(self.hasher.hash, temporary_password)
        expires_at = self.clock() + self.ttl

        async with self.store.transaction() as session:
            user = await session.scalar(
                select(UserRecord)
                .where(or_(UserRecord.contact == identifier, UserRecord.handle == identifier))
                .with_for_update()
            )
            if user is None:
                logger.info("Recovery requested for unknown account")
                return RECOVERY_RESPONSE_MESSAGE

            user.credential_hash = credential_hash
            user.temp_credential_expiry = expires_at
            user.failed_attempts = 0
            user.lockout_until = None
            user_id = user.id
            recipient = user.contact

        self.audit.log_recovery_issued(user_id, expires_at)

        delivered = await self.mailer.send_mail(
            recipient,
            RECOVERY_SUBJECT.format(minutes=self.ttl_minutes),
            RECOVERY_BODY.format(password=temporary_password, minutes=self.ttl_minutes),
        )
        if not delivered:
            self.audit.log_delivery_failure(recipient)
            raise DeliveryError()

        return RECOVERY_RESPONSE_MESSAGE
