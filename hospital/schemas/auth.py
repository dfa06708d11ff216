from pydantic import EmailStr, Field
from typing import Optional
from datetime import datetime

from .base import APIModel
from ..core.security import UserRole

class UserRegister(APIModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=1)
    # Normalized and checked against the allowlist in AuthService (403)
    role: str = Field(..., min_length=1)

class UserLogin(APIModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

class UserSummary(APIModel):
    """Identity fields that are safe to embed in other resources."""
    id: int
    name: str
    email: str
    role: UserRole

class UserResponse(UserSummary):
    created_at: Optional[datetime] = None

class AuthResponse(APIModel):
    user: UserResponse
    token: str
