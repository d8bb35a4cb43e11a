"""
Configuration management using environment variables.
Handles store, security, lockout, recovery, SMTP and upload settings
with proper validation and defaults.
"""

from datetime import timedelta
from pathlib import Path
from typing import Optional

from pydantic import validator
from pydantic_settings import BaseSettings


class LibraryConfig(BaseSettings):
    """
    Configuration class for the library backend.
    Uses pydantic BaseSettings for environment variable management.
    """

    # Database Configuration
    database_url: str = "sqlite+aiosqlite:///./library.db"
    database_echo: bool = False

    # Session Tokens
    jwt_secret_key: str = "change-this-secret-key-in-production"
    jwt_algorithm: str = "HS256"
    session_token_expire_minutes: int = 60

    # Login Lockout
    max_failed_attempts: int = 3
    lockout_cooldown_seconds: int = 300

    # Password Recovery
    temporary_password_length: int = 8
    temporary_password_ttl_minutes: int = 10
    bcrypt_rounds: int = 12

    # SMTP Configuration
    smtp_host: str = "localhost"
    smtp_port: int = 465
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_ssl: bool = True
    smtp_sender_name: str = "Library Support"
    smtp_timeout: int = 15

    # Uploads
    upload_dir: str = "uploads"
    max_pdf_files: int = 5
    max_pdf_total_bytes: int = 2 * 1024 * 1024 * 1024
    max_cover_image_bytes: int = 5 * 1024 * 1024

    # Bootstrap Administrator
    bootstrap_admin_handle: Optional[str] = None
    bootstrap_admin_contact: Optional[str] = None
    bootstrap_admin_password: Optional[str] = None

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "json"
    log_file: Optional[str] = None

    # Development/Testing
    debug: bool = False

    @validator('max_failed_attempts')
    def validate_max_failed_attempts(cls, v):
        """Ensure at least one attempt is allowed before locking."""
        if v < 1 or v > 100:
            raise ValueError('max_failed_attempts must be between 1 and 100')
        return v

    @validator('lockout_cooldown_seconds', 'session_token_expire_minutes', 'temporary_password_ttl_minutes')
    def validate_positive_duration(cls, v):
        """Ensure durations are positive."""
        if v <= 0:
            raise ValueError('duration settings must be positive')
        return v

    @validator('temporary_password_length')
    def validate_temporary_password_length(cls, v):
        """Room for one uppercase letter, one lowercase letter and one digit."""
        if v < 3 or v > 72:
            raise ValueError('temporary_password_length must be between 3 and 72')
        return v

    @validator('bcrypt_rounds')
    def validate_bcrypt_rounds(cls, v):
        """Ensure the bcrypt cost factor is within the supported range."""
        if v < 4 or v > 31:
            raise ValueError('bcrypt_rounds must be between 4 and 31')
        return v

    @validator('log_level')
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of: {valid_levels}')
        return v.upper()

    @validator('log_format')
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ['json', 'console']
        if v.lower() not in valid_formats:
            raise ValueError(f'log_format must be one of: {valid_formats}')
        return v.lower()

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @property
    def lockout_cooldown(self) -> timedelta:
        return timedelta(seconds=self.lockout_cooldown_seconds)

    @property
    def session_token_ttl(self) -> timedelta:
        return timedelta(minutes=self.session_token_expire_minutes)

    @property
    def temporary_password_ttl(self) -> timedelta:
        return timedelta(minutes=self.temporary_password_ttl_minutes)

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None

    def get_upload_dir_path(self) -> Path:
        """Get upload directory as Path object."""
        return Path(self.upload_dir)

    def has_bootstrap_admin(self) -> bool:
        """Check whether a bootstrap administrator is fully configured."""
        return bool(
            self.bootstrap_admin_handle
            and self.bootstrap_admin_contact
            and self.bootstrap_admin_password
        )

    def is_sqlite(self) -> bool:
        """Check if the configured store is SQLite."""
        return self.database_url.startswith("sqlite")


# Global configuration instance
config = LibraryConfig()
