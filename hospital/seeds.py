"""
Database seed data.

Admins cannot self-register, so the first admin account is created here.
``--demo`` additionally loads a small set of doctors, patients and
appointments around the current day for local development.

    python -m hospital.seeds --admin-email admin@hospital.com --demo
"""
import argparse
import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from .core.database import SessionLocal, init_db
from .core.security import UserRole, get_password_hash
from .models.user import User
from .models.patient import Patient
from .models.doctor import Doctor
from .models.appointment import Appointment, AppointmentStatus

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password123"

DEMO_DOCTORS = [
    {"name": "Dr. John Smith", "email": "john.smith@hospital.com", "specialization": "Cardiology", "department": "Cardiology"},
    {"name": "Dr. Emily Chen", "email": "emily.chen@hospital.com", "specialization": "Pediatrics", "department": "Pediatrics"},
    {"name": "Dr. Michael Rodriguez", "email": "michael.rodriguez@hospital.com", "specialization": "Orthopedics", "department": "Orthopedics"},
    {"name": "Dr. Sarah Williams", "email": "sarah.williams@hospital.com", "specialization": "Neurology", "department": "Neurology"},
]

DEMO_PATIENTS = [
    {"name": "Alice Johnson", "email": "alice.johnson@email.com", "age": 34, "gender": "Female", "phone": "555-0101"},
    {"name": "Bob Smith", "email": "bob.smith@email.com", "age": 52, "gender": "Male", "phone": "555-0102"},
    {"name": "Charlie Brown", "email": "charlie.brown@email.com", "age": 8, "gender": "Male", "phone": "555-0103"},
    {"name": "Diana Wilson", "email": "diana.wilson@email.com", "age": 41, "gender": "Female", "phone": "555-0104"},
]

# (patient index, doctor index, day offset, hour, minute, status)
DEMO_APPOINTMENTS = [
    (0, 0, 0, 9, 0, AppointmentStatus.PENDING),
    (1, 0, 0, 10, 30, AppointmentStatus.CONFIRMED),
    (2, 1, 0, 11, 0, AppointmentStatus.PENDING),
    (3, 2, 0, 14, 0, AppointmentStatus.CONFIRMED),
    (0, 1, 1, 9, 30, AppointmentStatus.PENDING),
    (1, 3, 7, 15, 0, AppointmentStatus.PENDING),
    (2, 0, -1, 16, 0, AppointmentStatus.COMPLETED),
    (3, 3, -1, 13, 0, AppointmentStatus.CANCELLED),
]

def _get_or_create_user(db: Session, name: str, email: str, password: str, role: UserRole) -> User:
    user = db.query(User).filter(User.email == email.lower()).first()
    if user:
        logger.info(f"User {email} already exists, skipping")
        return user

    user = User(
        name=name,
        email=email.lower(),
        password_hash=get_password_hash(password),
        role=role,
    )
    db.add(user)
    db.flush()
    return user

def seed_admin(db: Session, name: str, email: str, password: str) -> User:
    """Create an ADMIN account unless the email is already taken."""
    admin = _get_or_create_user(db, name, email, password, UserRole.ADMIN)
    db.commit()
    logger.info(f"Admin account ready: {admin.email}")
    return admin

def seed_demo_data(db: Session, now: datetime = None) -> int:
    """Load demo doctors, patients and appointments. Returns appointments created."""
    now = now or datetime.now()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)

    doctors = []
    for entry in DEMO_DOCTORS:
        user = _get_or_create_user(db, entry["name"], entry["email"], DEMO_PASSWORD, UserRole.DOCTOR)
        doctor = user.doctor or Doctor(
            user=user,
            specialization=entry["specialization"],
            department=entry["department"],
        )
        db.add(doctor)
        doctors.append(doctor)

    patients = []
    for entry in DEMO_PATIENTS:
        user = _get_or_create_user(db, entry["name"], entry["email"], DEMO_PASSWORD, UserRole.PATIENT)
        patient = user.patient or Patient(
            user=user,
            age=entry["age"],
            gender=entry["gender"],
            phone=entry["phone"],
        )
        db.add(patient)
        patients.append(patient)

    db.flush()

    created = 0
    for patient_idx, doctor_idx, day_offset, hour, minute, appointment_status in DEMO_APPOINTMENTS:
        when = midnight + timedelta(days=day_offset, hours=hour, minutes=minute)
        exists = db.query(Appointment).filter(
            Appointment.patient_id == patients[patient_idx].id,
            Appointment.doctor_id == doctors[doctor_idx].id,
            Appointment.date == when,
        ).first()
        if exists:
            continue

        db.add(Appointment(
            patient_id=patients[patient_idx].id,
            doctor_id=doctors[doctor_idx].id,
            date=when,
            status=appointment_status,
        ))
        created += 1

    db.commit()
    logger.info(f"Seeded {len(doctors)} doctors, {len(patients)} patients, {created} appointments")
    return created

def main(argv=None):
    parser = argparse.ArgumentParser(description="Seed the hospital database")
    parser.add_argument("--admin-name", default="Admin User")
    parser.add_argument("--admin-email", default="admin@hospital.com")
    parser.add_argument("--admin-password", default=DEMO_PASSWORD)
    parser.add_argument("--demo", action="store_true", help="also load demo doctors, patients and appointments")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    init_db()

    db = SessionLocal()
    try:
        seed_admin(db, args.admin_name, args.admin_email, args.admin_password)
        if args.demo:
            seed_demo_data(db)
    finally:
        db.close()

if __name__ == "__main__":
    main()
