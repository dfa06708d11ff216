from typing import Optional
from datetime import datetime

from .base import APIModel
from .patient import PatientResponse
from .doctor import DoctorResponse
from ..models.appointment import AppointmentStatus

class AppointmentCreate(APIModel):
    date: datetime
    doctor_id: int

class AppointmentStatusUpdate(APIModel):
    id: int
    status: AppointmentStatus

class AppointmentResponse(APIModel):
    id: int
    patient_id: int
    doctor_id: int
    date: datetime
    status: AppointmentStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    patient: PatientResponse
    doctor: DoctorResponse
