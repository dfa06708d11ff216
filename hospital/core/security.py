from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import HTTPException, status
from pydantic import BaseModel
from enum import Enum
import logging

from .config import settings

logger = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

BEARER_PREFIX = "Bearer "

class UserRole(str, Enum):
    ADMIN = "ADMIN"
    DOCTOR = "DOCTOR"
    PATIENT = "PATIENT"

# Roles a user may pick for themselves at registration
SELF_REGISTER_ROLES = (UserRole.PATIENT, UserRole.DOCTOR)

class TokenPayload(BaseModel):
    sub: Optional[str] = None
    role: Optional[UserRole] = None
    exp: Optional[int] = None
    token_type: Optional[str] = None

    @property
    def user_id(self) -> int:
        return int(self.sub)

# Password utilities
def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    """Generate password hash."""
    return pwd_context.hash(password)

# JWT utilities
def create_access_token(
    user_id: int,
    role: UserRole,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create a signed access token carrying the user id and role."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {
        "sub": str(user_id),
        "role": UserRole(role).value,
        "exp": datetime.utcnow() + expires_delta,
        "token_type": "access",
    }

    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )

def verify_token(token: str) -> Optional[TokenPayload]:
    """Verify and decode JWT token."""
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
        return TokenPayload(**payload)

    except (JWTError, ValueError) as e:
        logger.info(f"Token verification failed: {str(e)}")
        return None

def verify_bearer(authorization: Optional[str]) -> Optional[TokenPayload]:
    """
    Resolve an ``Authorization`` header value to token claims.

    Returns None when the header is absent, is not a bearer credential, or
    carries a token that is badly signed, expired, not an access token or
    has no usable subject. Never raises.
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None

    token_payload = verify_token(authorization[len(BEARER_PREFIX):].strip())
    if not token_payload or token_payload.token_type != "access":
        return None

    if not token_payload.sub or not token_payload.sub.isdigit() or token_payload.role is None:
        return None

    return token_payload

# Security exceptions
class AuthenticationError(HTTPException):
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

class AuthorizationError(HTTPException):
    def __init__(self, detail: str = "Not enough permissions"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )
