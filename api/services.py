"""
Service container for the API.

Everything a request handler needs is built once around a connected store
and attached to ``app.state.services``.
"""

from datetime import datetime
from typing import Callable, Optional

from accounts.lockout import LockoutPolicy
from accounts.login import LoginService
from accounts.mailer import SMTPMailer
from accounts.recovery import RecoveryService
from accounts.registration import RegistrationService
from accounts.security import PasswordHasher, TokenIssuer
from circulation.catalog import CatalogService
from circulation.ledger import LoanLedger
from circulation.uploads import FileStore, UploadLimits
from storage.database import LibraryStore
from utilities.config import LibraryConfig
from utilities.logger import AuditLogger


class LibraryServices:
    """Services wired to one store, one clock and one configuration."""

    def __init__(
        self,
        config: LibraryConfig,
        store: LibraryStore,
        mailer=None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config
        self.store = store
        self.clock = clock or datetime.utcnow
        self.audit = AuditLogger()

        self.hasher = PasswordHasher(rounds=config.bcrypt_rounds)
        self.tokens = TokenIssuer(
            secret_key=config.jwt_secret_key,
            algorithm=config.jwt_algorithm,
            ttl=config.session_token_ttl,
        )
        self.policy = LockoutPolicy(
            max_failed_attempts=config.max_failed_attempts,
            cooldown=config.lockout_cooldown,
        )
        self.mailer = mailer or SMTPMailer.from_config(config)
        self.files = FileStore(config.get_upload_dir_path())

        self.login = LoginService(store, self.policy, self.hasher, self.tokens, self.audit, self.clock)
        self.recovery = RecoveryService(
            store,
            self.hasher,
            self.mailer,
            ttl=config.temporary_password_ttl,
            password_length=config.temporary_password_length,
            audit=self.audit,
            clock=self.clock,
        )
        self.registration = RegistrationService(store, self.hasher)
        self.catalog = CatalogService(store, self.files, UploadLimits.from_config(config), self.clock)
        self.ledger = LoanLedger(store, self.audit, self.clock)

    async def bootstrap(self) -> None:
        """Create the configured administrator when none exists."""
        await self.registration.ensure_bootstrap_admin(
            self.config.bootstrap_admin_handle,
            self.config.bootstrap_admin_contact,
            self.config.bootstrap_admin_password,
        )
