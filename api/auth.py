"""
Session-token authentication and role authorization for the FastAPI API.
"""

from typing import Callable, Optional

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from accounts.models import SessionClaims
from api.services import LibraryServices
from storage.models import Role
from utilities.errors import AuthenticationError, ForbiddenError

logger = structlog.get_logger(__name__)

# Security scheme; missing headers are reported through AuthenticationError
security = HTTPBearer(auto_error=False)

STAFF_ROLES = (Role.LIBRARIAN, Role.ADMINISTRATOR)


def get_services(request: Request) -> LibraryServices:
    """Service container attached to the application at startup."""
    return request.app.state.services


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    services: LibraryServices = Depends(get_services),
) -> SessionClaims:
    """
    Verify the bearer session token of a request.

    Args:
        credentials: HTTP authorization credentials
        services: Service container

    Returns:
        Claims carried by the token

    Raises:
        AuthenticationError: If the token is missing, expired or invalid
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication token required.")

    return services.tokens.verify(credentials.credentials)


def require_roles(*roles: Role) -> Callable:
    """
    Build a dependency that admits only the given roles.

    Args:
        *roles: Roles allowed to call the endpoint

    Returns:
        FastAPI dependency returning the caller's claims
    """

    async def dependency(user: SessionClaims = Depends(get_current_user)) -> SessionClaims:
        if user.role not in roles:
            logger.warning(
                "Role not allowed",
                user_id=user.user_id,
                role=user.role.value,
                allowed=[role.value for role in roles],
            )
            raise ForbiddenError()
        return user

    return dependency


require_staff = require_roles(*STAFF_ROLES)
require_admin = require_roles(Role.ADMINISTRATOR)
