from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from ...core.database import get_db
from ...core.security import TokenPayload, UserRole
from ...api.deps import get_current_identity, require_roles
from ...services.appointment_service import AppointmentService
from ...schemas.appointment import (
    AppointmentCreate, AppointmentStatusUpdate, AppointmentResponse
)

router = APIRouter(prefix="/appointments", tags=["Appointments"])

@router.get("", response_model=List[AppointmentResponse])
async def list_appointments(
    me: Optional[str] = Query(None, description="'patient' or 'doctor'; required unless ADMIN"),
    date: Optional[str] = Query(None, description="'today' limits to the current day"),
    identity: TokenPayload = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """List appointments visible to the caller, earliest first."""
    return AppointmentService(db).list_appointments(identity, me=me, date=date)

@router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    appointment_data: AppointmentCreate,
    identity: TokenPayload = Depends(require_roles(
        UserRole.PATIENT,
        detail="Only Patients can create Appointments."
    )),
    db: Session = Depends(get_db)
):
    """Book an appointment with a doctor."""
    return AppointmentService(db).create_appointment(identity, appointment_data)

@router.put("", response_model=AppointmentResponse)
async def update_appointment_status(
    update_data: AppointmentStatusUpdate,
    identity: TokenPayload = Depends(require_roles(
        UserRole.DOCTOR, UserRole.ADMIN,
        detail="Only Doctors and Admins can update appointments"
    )),
    db: Session = Depends(get_db)
):
    """Change the status of an appointment."""
    return AppointmentService(db).update_status(identity, update_data)
