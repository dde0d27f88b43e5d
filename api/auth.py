"""
Request guard: resolves the caller from a bearer access token and enforces roles.
"""

from typing import Any, Dict, Optional

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from accounts.models import Role, UserRecord
from api.dependencies import ServiceContainer, get_services
from utilities.errors import Forbidden, InvalidTokenError, NotFound, Unauthorized, ValidationError

logger = structlog.get_logger(__name__)

# Security scheme; missing headers are reported by the guard itself as 401
security = HTTPBearer(auto_error=False)


async def authenticate(
    credentials: Optional[HTTPAuthorizationCredentials],
    services: ServiceContainer,
    require_session: bool = True,
) -> UserRecord:
    """
    Resolve the user behind a bearer access token.

    Raises:
        Unauthorized: No bearer token was supplied.
        TokenExpiredError: The access token has expired and must be refreshed.
        InvalidTokenError: The access token is malformed, forged or undecryptable.
        NotFound: The token's user no longer exists.
        Forbidden: The user has no active session and ``require_session`` is set.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Token not provided")

    claims: Dict[str, Any] = services.tokens.verify_access_token(credentials.credentials)

    try:
        user = await services.store.find_by_id(claims["user"]["id"])
    except ValidationError:
        raise InvalidTokenError("Invalid token payload")

    if user is None:
        raise NotFound("User not found")

    if require_session and not user.has_active_session:
        logger.warning("Access token presented without an active session", user_id=user.id)
        raise Forbidden("User does not have a valid refresh token")

    return user


async def require_authentication(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    services: ServiceContainer = Depends(get_services),
) -> UserRecord:
    """Dependency: the authenticated user, also attached to ``request.state.user``."""
    user = await authenticate(credentials, services)
    request.state.user = user
    return user


async def require_token_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    services: ServiceContainer = Depends(get_services),
) -> UserRecord:
    """Dependency: like ``require_authentication`` but tolerates a missing session."""
    user = await authenticate(credentials, services, require_session=False)
    request.state.user = user
    return user


def require_role(*roles: Role):
    """Dependency factory: the authenticated user, if their role is one of ``roles``."""
    allowed = frozenset(roles)

    async def verify_role(user: UserRecord = Depends(require_authentication)) -> UserRecord:
        if user.role not in allowed:
            logger.warning("Role check failed", user_id=user.id, role=user.role.value)
            raise Forbidden("You do not have permission to access this resource")
        return user

    return verify_role
