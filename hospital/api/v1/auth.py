from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...core.security import TokenPayload, AuthenticationError
from ...api.deps import get_current_identity, rate_limit_check
from ...services.auth_service import AuthService
from ...schemas.auth import UserLogin, UserRegister, AuthResponse, UserResponse

router = APIRouter(prefix="/auth", tags=["Authentication"])

@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Register a new patient or doctor account."""
    auth_service = AuthService(db)
    return auth_service.register_user(user_data)

@router.post("/login", response_model=AuthResponse)
async def login(
    login_data: UserLogin,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Authenticate user and return an access token."""
    auth_service = AuthService(db)
    return auth_service.authenticate_user(login_data)

@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    identity: TokenPayload = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """Get current user information."""
    user = AuthService(db).get_user(identity.user_id)
    if not user:
        raise AuthenticationError("User not found")
    return user
