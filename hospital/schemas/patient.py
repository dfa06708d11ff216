from pydantic import Field
from typing import Optional
from datetime import datetime

from .base import APIModel
from .auth import UserSummary

class PatientCreate(APIModel):
    age: int = Field(..., ge=0, le=150)
    gender: str = Field(..., min_length=1, max_length=20)
    phone: str = Field(..., min_length=1, max_length=20)

class PatientResponse(APIModel):
    id: int
    user_id: int
    age: int
    gender: str
    phone: str
    created_at: Optional[datetime] = None
    user: Optional[UserSummary] = None
