"""
Result models for the account services.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from storage.models import Role


class LoginOutcome(str, Enum):
    """Possible results of a login attempt."""
    SUCCESS = "success"
    INVALID_CREDENTIAL = "invalid_credential"
    LOCKED = "locked"
    EXPIRED_TEMPORARY = "expired_temporary"


INVALID_CREDENTIAL_MESSAGE = "Invalid handle or password."
LOCKED_MESSAGE = "Too many failed attempts. Try again later."
EXPIRED_TEMPORARY_MESSAGE = "Temporary password expired. Request a new one."
SUCCESS_MESSAGE = "Login successful."


class LoginResult(BaseModel):
    """Outcome of a single login attempt."""
    outcome: LoginOutcome
    message: str
    token: Optional[str] = None
    user_id: Optional[int] = None
    role: Optional[Role] = None
    remaining_attempts: Optional[int] = Field(None, ge=0)
    retry_after_seconds: Optional[int] = Field(None, ge=0)

    @property
    def succeeded(self) -> bool:
        return self.outcome == LoginOutcome.SUCCESS


class SessionClaims(BaseModel):
    """Identity carried by a verified session token."""
    user_id: int
    role: Role


class AccountSummary(BaseModel):
    """Public view of a user account."""
    id: int
    handle: str
    contact: str
    role: Role

    model_config = {"from_attributes": True}
