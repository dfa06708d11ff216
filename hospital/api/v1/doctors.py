from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from ...core.database import get_db
from ...core.security import TokenPayload, UserRole
from ...api.deps import get_current_identity, require_roles
from ...services.profile_service import ProfileService
from ...schemas.doctor import DoctorCreate, DoctorResponse

router = APIRouter(prefix="/doctors", tags=["Doctors"])

@router.get("", response_model=List[DoctorResponse])
async def list_doctors(
    _: TokenPayload = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """List every doctor with their name and email."""
    return ProfileService(db).list_doctors()

@router.post("", response_model=DoctorResponse, status_code=status.HTTP_201_CREATED)
async def create_doctor(
    doctor_data: DoctorCreate,
    identity: TokenPayload = Depends(require_roles(
        UserRole.DOCTOR,
        detail="Only users with DOCTOR role can create a doctor profile."
    )),
    db: Session = Depends(get_db)
):
    """Create the caller's doctor profile."""
    return ProfileService(db).create_doctor_profile(identity, doctor_data)
