"""
Lockout policy for repeated failed logins.

Pure decision logic over a user's failed-attempt counter and lockout
timestamp. The login service applies it inside a row-locked transaction.
"""

import math
from datetime import datetime, timedelta
from typing import Optional

from storage.models import UserRecord


class LockoutPolicy:
    """
    Threshold/cooldown policy.

    A user is locked once ``failed_attempts`` reaches ``max_failed_attempts``.
    ``lockout_until`` records the moment the threshold was reached and the
    lock lasts ``cooldown`` from there. Attempts made while locked do not
    move it.
    """

    def __init__(self, max_failed_attempts: int = 3, cooldown: timedelta = timedelta(minutes=5)):
        if max_failed_attempts < 1:
            raise ValueError("max_failed_attempts must be at least 1")
        self.max_failed_attempts = max_failed_attempts
        self.cooldown = cooldown

    @property
    def cooldown_seconds(self) -> int:
        return int(math.ceil(self.cooldown.total_seconds()))

    def unlocks_at(self, user: UserRecord) -> Optional[datetime]:
        if user.lockout_until is None:
            return None
        return user.lockout_until + self.cooldown

    def is_locked(self, user: UserRecord, now: datetime) -> bool:
        unlocks_at = self.unlocks_at(user)
        return unlocks_at is not None and now < unlocks_at

    def seconds_remaining(self, user: UserRecord, now: datetime) -> int:
        """Whole seconds until the lock lifts, rounded up. Zero when unlocked."""
        unlocks_at = self.unlocks_at(user)
        if unlocks_at is None or now >= unlocks_at:
            return 0
        return int(math.ceil((unlocks_at - now).total_seconds()))

    def cooldown_elapsed(self, user: UserRecord, now: datetime) -> bool:
        """True when a lock was recorded and its window has passed."""
        return user.lockout_until is not None and not self.is_locked(user, now)

    def reset(self, user: UserRecord) -> None:
        user.failed_attempts = 0
        user.lockout_until = None

    def remaining_attempts(self, user: UserRecord) -> int:
        return max(self.max_failed_attempts - user.failed_attempts, 0)

    def record_failure(self, user: UserRecord, now: datetime) -> bool:
        """
        Count a failed attempt.

        Returns:
            True if this failure reached the threshold and locked the account
        """
        user.failed_attempts += 1
        if user.failed_attempts >= self.max_failed_attempts:
            user.lockout_until = now
            return True
        return False
