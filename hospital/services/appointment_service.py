from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import SQLAlchemyError
from fastapi import HTTPException, status
from datetime import datetime, timedelta
from typing import List, Optional, Tuple
import logging

from ..core.config import settings
from ..core.security import TokenPayload, UserRole, AuthorizationError
from ..models.appointment import Appointment, AppointmentStatus, can_transition
from ..models.patient import Patient
from ..models.doctor import Doctor
from ..schemas.appointment import AppointmentCreate, AppointmentStatusUpdate
from .profile_service import ProfileService, INVALID_SCOPE_DETAIL

logger = logging.getLogger(__name__)

TODAY = "today"

def today_window(now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Return [midnight today, midnight tomorrow) in server-local time."""
    now = now or datetime.now()
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)

def to_server_local(value: datetime) -> datetime:
    """Appointment dates are stored as naive server-local timestamps."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value

def _with_participants(query):
    return query.options(
        joinedload(Appointment.patient).joinedload(Patient.user),
        joinedload(Appointment.doctor).joinedload(Doctor.user),
    )

class AppointmentService:
    def __init__(self, db: Session):
        self.db = db
        self.profiles = ProfileService(db)

    def build_filters(
        self,
        identity: TokenPayload,
        me: Optional[str] = None,
        date: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> list:
        """
        Build the WHERE clauses for listing appointments.

        Non-admin callers must scope the listing to their own patient or
        doctor profile with ``me``. Admins may scope it or leave it open.
        ``date=today`` narrows the result to the current local day.
        """
        filters = []

        if identity.role != UserRole.ADMIN and not me:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=INVALID_SCOPE_DETAIL
            )

        if me:
            profile = self.profiles.resolve_profile(identity, me)
            if isinstance(profile, Patient):
                filters.append(Appointment.patient_id == profile.id)
            else:
                filters.append(Appointment.doctor_id == profile.id)

        if date is not None:
            if date != TODAY:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Invalid 'date' parameter. Only 'today' is supported"
                )
            start, end = today_window(now)
            filters.append(Appointment.date >= start)
            filters.append(Appointment.date < end)

        return filters

    def list_appointments(
        self,
        identity: TokenPayload,
        me: Optional[str] = None,
        date: Optional[str] = None
    ) -> List[Appointment]:
        filters = self.build_filters(identity, me=me, date=date)
        return (
            _with_participants(self.db.query(Appointment))
            .filter(*filters)
            .order_by(Appointment.date.asc(), Appointment.id.asc())
            .all()
        )

    def get_appointment(self, appointment_id: int) -> Optional[Appointment]:
        return (
            _with_participants(self.db.query(Appointment))
            .filter(Appointment.id == appointment_id)
            .first()
        )

    def create_appointment(
        self,
        identity: TokenPayload,
        data: AppointmentCreate
    ) -> Appointment:
        """Book a PENDING appointment for the calling patient."""
        doctor = self.db.query(Doctor).filter(Doctor.id == data.doctor_id).first()
        if not doctor:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Doctor not found"
            )

        patient = self.profiles.get_patient_profile(identity.user_id)
        if not patient:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Patient profile not found. Please create a patient profile first."
            )

        appointment = Appointment(
            patient_id=patient.id,
            doctor_id=doctor.id,
            date=to_server_local(data.date),
            status=AppointmentStatus.PENDING,
        )
        self.db.add(appointment)
        self._commit("Failed to create appointment")

        logger.info(
            f"Patient {patient.id} booked appointment {appointment.id} "
            f"with doctor {doctor.id} at {appointment.date}"
        )
        return self.get_appointment(appointment.id)

    def update_status(
        self,
        identity: TokenPayload,
        data: AppointmentStatusUpdate
    ) -> Appointment:
        """
        Move an appointment to a new status.

        Admins may update any appointment, doctors only their own. When
        ``ENFORCE_STATUS_TRANSITIONS`` is on, the PENDING -> CONFIRMED ->
        COMPLETED workflow (with CANCELLED reachable from both open states)
        is enforced.
        """
        appointment = self.get_appointment(data.id)
        if not appointment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Appointment not found"
            )

        if identity.role == UserRole.DOCTOR and appointment.doctor.user_id != identity.user_id:
            raise AuthorizationError("Doctors can only modify their own appointments")

        current = AppointmentStatus(appointment.status)
        if settings.ENFORCE_STATUS_TRANSITIONS and not can_transition(current, data.status):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot change status from {current.value} to {data.status.value}"
            )

        appointment.status = data.status
        self._commit("Failed to update appointment")

        logger.info(
            f"User {identity.user_id} ({identity.role.value}) moved appointment "
            f"{appointment.id} from {current.value} to {data.status.value}"
        )
        return self.get_appointment(appointment.id)

    def _commit(self, failure_detail: str):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"{failure_detail}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=failure_detail
            )
