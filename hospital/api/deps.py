from fastapi import Depends, Header, HTTPException, status, Request
from typing import Optional
import logging

from ..core.config import settings
from ..core.database import get_redis
from ..core.security import (
    verify_bearer, AuthenticationError, AuthorizationError,
    UserRole, TokenPayload
)

logger = logging.getLogger(__name__)

async def get_current_identity(
    authorization: Optional[str] = Header(None)
) -> TokenPayload:
    """Authenticate the caller from the bearer token alone.

    The server keeps no session state: the token's claims are the identity.
    """
    token_payload = verify_bearer(authorization)
    if not token_payload:
        raise AuthenticationError("Unauthorized")

    return token_payload

def ensure_role(
    identity: TokenPayload,
    *allowed_roles: UserRole,
    detail: Optional[str] = None
) -> TokenPayload:
    """Raise 403 unless the caller holds one of ``allowed_roles``."""
    if identity.role not in allowed_roles:
        raise AuthorizationError(
            detail or f"Access denied. Required roles: {[role.value for role in allowed_roles]}"
        )
    return identity

# Role-based access control dependencies
def require_roles(*allowed_roles: UserRole, detail: Optional[str] = None):
    """Create a dependency that requires one of the given user roles."""
    async def role_checker(
        identity: TokenPayload = Depends(get_current_identity)
    ) -> TokenPayload:
        return ensure_role(identity, *allowed_roles, detail=detail)

    return role_checker

# Rate limiting dependency
async def rate_limit_check(
    request: Request,
    redis_client = Depends(get_redis)
) -> None:
    """Fixed-window rate limiting per client IP and path."""
    if not settings.RATE_LIMIT_ENABLED:
        return

    client_ip = request.client.host if request.client else "unknown"
    key = f"rate_limit:{request.url.path}:{client_ip}"

    current_requests = redis_client.get(key)
    if current_requests is None:
        redis_client.setex(key, settings.RATE_LIMIT_WINDOW_SECONDS, 1)
    else:
        if int(current_requests) >= settings.RATE_LIMIT_REQUESTS:
            logger.warning(f"Rate limit exceeded for {client_ip} on {request.url.path}")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests. Please try again later."
            )
        redis_client.incr(key)
