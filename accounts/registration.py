"""
Account creation: student self-registration, librarian management and the
bootstrap administrator.
"""

import asyncio
from typing import List, Optional

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError

from accounts.models import AccountSummary
from accounts.security import PasswordHasher
from storage.database import LibraryStore
from storage.models import Role, UserRecord
from utilities.errors import ConflictError, InvalidInputError

logger = structlog.get_logger(__name__)


class RegistrationService:
    """Creates and lists user accounts."""

    def __init__(self, store: LibraryStore, hasher: PasswordHasher):
        self.store = store
        self.hasher = hasher

    @staticmethod
    def _clean(handle: str, contact: str, password: str):
        handle = (handle or "").strip()
        contact = (contact or "").strip().lower()
        if not handle or not contact or not password:
            raise InvalidInputError("Handle, e-mail address and password are required.")
        if "@" not in contact or contact.startswith("@") or contact.endswith("@"):
            raise InvalidInputError("A valid e-mail address is required.")
        return handle, contact, password

    async def _create(self, handle: str, contact: str, password: str, role: Role) -> AccountSummary:
        handle, contact, password = self._clean(handle, contact, password)
        credential_hash = await asyncio.to_thread(self.hasher.hash, password)

        try:
            async with self.store.transaction() as session:
                existing = (
                    await session.scalars(
                        select(UserRecord).where(
                            or_(UserRecord.handle == handle, UserRecord.contact == contact)
                        )
                    )
                ).all()
                if any(user.handle == handle for user in existing):
                    raise ConflictError(f"Handle {handle} is already registered.")
                if existing:
                    raise ConflictError(f"E-mail address {contact} is already registered.")

                user = UserRecord(
                    handle=handle,
                    contact=contact,
                    credential_hash=credential_hash,
                    role=role,
                    failed_attempts=0,
                )
                session.add(user)
                await session.flush()
                summary = AccountSummary.model_validate(user)
        except IntegrityError as e:
            # Lost a race against a concurrent registration.
            logger.warning("Registration collided with an existing account", handle=handle, error=str(e))
            raise ConflictError("Handle or e-mail address is already registered.") from e

        logger.info("Account created", user_id=summary.id, handle=handle, role=role.value)
        return summary

    async def register(self, handle: str, contact: str, password: str) -> AccountSummary:
        """Self-registration. New accounts are always students."""
        return await self._create(handle, contact, password, Role.STUDENT)

    async def add_librarian(self, handle: str, contact: str, password: str) -> AccountSummary:
        return await self._create(handle, contact, password, Role.LIBRARIAN)

    async def list_librarians(self) -> List[AccountSummary]:
        async with self.store.transaction() as session:
            users = (
                await session.scalars(
                    select(UserRecord).where(UserRecord.role == Role.LIBRARIAN).order_by(UserRecord.handle)
                )
            ).all()
            return [AccountSummary.model_validate(user) for user in users]

    async def ensure_bootstrap_admin(
        self,
        handle: Optional[str],
        contact: Optional[str],
        password: Optional[str],
    ) -> Optional[AccountSummary]:
        """
        Create the configured administrator if no administrator exists yet.

        Returns:
            The created account, or None when nothing was created
        """
        if not (handle and contact and password):
            return None

        async with self.store.transaction() as session:
            admin_count = await session.scalar(
                select(func.count()).select_from(UserRecord).where(UserRecord.role == Role.ADMINISTRATOR)
            )
        if admin_count:
            logger.info("Administrator already exists, skipping bootstrap")
            return None

        try:
            admin = await self._create(handle, contact, password, Role.ADMINISTRATOR)
        except ConflictError:
            logger.error("Bootstrap administrator collides with an existing account", handle=handle)
            raise

        logger.info("Bootstrap administrator created", user_id=admin.id, handle=admin.handle)
        return admin
