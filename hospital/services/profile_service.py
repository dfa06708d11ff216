from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from fastapi import HTTPException, status
from typing import List, Optional, Union
from enum import Enum
import logging

from ..core.security import TokenPayload
from ..models.patient import Patient
from ..models.doctor import Doctor
from ..schemas.patient import PatientCreate
from ..schemas.doctor import DoctorCreate

logger = logging.getLogger(__name__)

class ActingAs(str, Enum):
    """Values of the ``me`` query parameter."""
    PATIENT = "patient"
    DOCTOR = "doctor"

INVALID_SCOPE_DETAIL = "Missing or invalid 'me' parameter. Must be 'patient' or 'doctor'"

class ProfileService:
    """Patient and doctor profiles, keyed by the owning user."""

    def __init__(self, db: Session):
        self.db = db

    def get_patient_profile(self, user_id: int) -> Optional[Patient]:
        return self.db.query(Patient).filter(Patient.user_id == user_id).first()

    def get_doctor_profile(self, user_id: int) -> Optional[Doctor]:
        return self.db.query(Doctor).filter(Doctor.user_id == user_id).first()

    def resolve_profile(
        self,
        identity: TokenPayload,
        acting_as: Optional[str]
    ) -> Union[Patient, Doctor]:
        """
        Find the profile the caller owns for the role they are acting as.

        Raises 400 when ``acting_as`` is not ``patient`` or ``doctor`` and
        404 when the caller has no such profile.
        """
        try:
            scope = ActingAs(acting_as)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=INVALID_SCOPE_DETAIL
            )

        if scope == ActingAs.PATIENT:
            profile = self.get_patient_profile(identity.user_id)
        else:
            profile = self.get_doctor_profile(identity.user_id)

        if profile is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"{scope.value.capitalize()} profile not found"
            )
        return profile

    def list_patients(self) -> List[Patient]:
        return (
            self.db.query(Patient)
            .options(joinedload(Patient.user))
            .order_by(Patient.id)
            .all()
        )

    def list_doctors(self) -> List[Doctor]:
        return (
            self.db.query(Doctor)
            .options(joinedload(Doctor.user))
            .order_by(Doctor.id)
            .all()
        )

    def create_patient_profile(self, identity: TokenPayload, data: PatientCreate) -> Patient:
        if self.get_patient_profile(identity.user_id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Patient profile already exists"
            )

        patient = Patient(
            user_id=identity.user_id,
            age=data.age,
            gender=data.gender,
            phone=data.phone,
        )
        self._save(patient, "Patient")
        return patient

    def create_doctor_profile(self, identity: TokenPayload, data: DoctorCreate) -> Doctor:
        if self.get_doctor_profile(identity.user_id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Doctor profile already exists"
            )

        doctor = Doctor(
            user_id=identity.user_id,
            specialization=data.specialization,
            department=data.department,
        )
        self._save(doctor, "Doctor")
        return doctor

    def _save(self, profile: Union[Patient, Doctor], kind: str):
        self.db.add(profile)
        try:
            self.db.commit()
        except IntegrityError:
            # The unique user_id constraint caught a concurrent duplicate
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"{kind} profile already exists"
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create {kind.lower()}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to create {kind.lower()}"
            )
        self.db.refresh(profile)
        logger.info(f"Created {kind.lower()} profile {profile.id} for user {profile.user_id}")
