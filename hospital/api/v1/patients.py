from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional, Union

from ...core.database import get_db
from ...core.security import TokenPayload, UserRole
from ...api.deps import get_current_identity, ensure_role, require_roles
from ...services.profile_service import ProfileService
from ...schemas.patient import PatientCreate, PatientResponse

router = APIRouter(prefix="/patients", tags=["Patients"])

@router.get("", response_model=Union[PatientResponse, List[PatientResponse]])
async def get_patients(
    me: Optional[str] = Query(None, description="'true' returns the caller's own profile"),
    identity: TokenPayload = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """Own patient profile with ``me=true``, otherwise every patient (admins and doctors)."""
    profiles = ProfileService(db)

    if me == "true":
        patient = profiles.get_patient_profile(identity.user_id)
        if not patient:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Patient profile not found"
            )
        return patient

    ensure_role(
        identity, UserRole.ADMIN, UserRole.DOCTOR,
        detail="Only Admins and Doctors can list patients"
    )
    return profiles.list_patients()

@router.post("", response_model=PatientResponse, status_code=status.HTTP_201_CREATED)
async def create_patient(
    patient_data: PatientCreate,
    identity: TokenPayload = Depends(require_roles(
        UserRole.PATIENT,
        detail="Only users with PATIENT role can create a patient profile."
    )),
    db: Session = Depends(get_db)
):
    """Create the caller's patient profile."""
    return ProfileService(db).create_patient_profile(identity, patient_data)
