from pydantic import Field
from typing import Optional
from datetime import datetime

from .base import APIModel
from .auth import UserSummary

class DoctorCreate(APIModel):
    specialization: str = Field(..., min_length=1, max_length=100)
    department: str = Field(..., min_length=1, max_length=100)

class DoctorResponse(APIModel):
    id: int
    user_id: int
    specialization: str
    department: str
    created_at: Optional[datetime] = None
    user: Optional[UserSummary] = None
