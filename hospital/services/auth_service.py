from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from fastapi import HTTPException, status
from typing import Optional
import logging

from ..models.user import User
from ..core.security import (
    verify_password, get_password_hash, create_access_token,
    UserRole, SELF_REGISTER_ROLES, AuthorizationError
)
from ..schemas.auth import UserLogin, UserRegister, AuthResponse, UserResponse

logger = logging.getLogger(__name__)

def normalize_role(raw_role: str) -> UserRole:
    """Upper-case a requested role and check it against the self-register allowlist."""
    normalized = raw_role.strip().upper()

    if normalized == UserRole.ADMIN.value:
        raise AuthorizationError("Cannot self-register as ADMIN")

    if normalized not in {role.value for role in SELF_REGISTER_ROLES}:
        raise AuthorizationError(
            f"Invalid role. Must be one of: {[role.value for role in SELF_REGISTER_ROLES]}"
        )

    return UserRole(normalized)

class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.lower()).first()

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def register_user(self, user_data: UserRegister) -> AuthResponse:
        """Register a new PATIENT or DOCTOR user and issue a token."""
        role = normalize_role(user_data.role)

        # Check if user already exists
        if self.get_user_by_email(user_data.email):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already exists"
            )

        new_user = User(
            name=user_data.name,
            email=user_data.email.lower(),
            password_hash=get_password_hash(user_data.password),
            role=role,
        )

        self.db.add(new_user)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race against a concurrent registration of the same email
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already exists"
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to register user: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to register user"
            )
        self.db.refresh(new_user)

        logger.info(f"Registered user {new_user.id} as {role.value}")
        return self._auth_response(new_user)

    def authenticate_user(self, login_data: UserLogin) -> AuthResponse:
        """Check credentials and issue a token."""
        user = self.get_user_by_email(login_data.email)

        if not user or not verify_password(login_data.password, user.password_hash):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid credentials"
            )

        return self._auth_response(user)

    def _auth_response(self, user: User) -> AuthResponse:
        return AuthResponse(
            user=UserResponse.model_validate(user),
            token=create_access_token(user.id, user.role)
        )
