# crud.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from models import Patient, Scan, ScanStatus, User
from schemas import PatientIn


# ----------------------------
# Users
# ----------------------------
def get_user(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def create_user(
    db: Session,
    email: str,
    password_hash: str,
    name: Optional[str] = None,
    user_id: Optional[str] = None,
) -> User:
    user = User(email=email, password_hash=password_hash, name=name)
    if user_id is not None:
        user.id = user_id
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


# ----------------------------
# Patients
# ----------------------------
def list_patients(db: Session, doctor_id: str) -> List[Patient]:
    return (
        db.query(Patient)
        .options(selectinload(Patient.scans))
        .filter(Patient.doctor_id == doctor_id)
        .order_by(Patient.created_at.desc())
        .all()
    )


def get_patient(db: Session, patient_id: str, doctor_id: str) -> Optional[Patient]:
    return db.query(Patient).filter(Patient.id == patient_id, Patient.doctor_id == doctor_id).first()


def create_patient(db: Session, doctor_id: str, data: PatientIn) -> Patient:
    patient = Patient(doctor_id=doctor_id, **data.model_dump())
    db.add(patient)
    db.commit()
    db.refresh(patient)
    return patient


def update_patient(db: Session, patient_id: str, doctor_id: str, data: PatientIn) -> Optional[Patient]:
    """Returns None when no patient with this id belongs to the doctor."""
    patient = get_patient(db, patient_id, doctor_id)
    if patient is None:
        return None
    for key, value in data.model_dump().items():
        setattr(patient, key, value)
    db.commit()
    db.refresh(patient)
    return patient


def delete_patient(db: Session, patient_id: str, doctor_id: str) -> bool:
    patient = get_patient(db, patient_id, doctor_id)
    if patient is None:
        return False
    # scans outlive their patient
    db.query(Scan).filter(Scan.patient_id == patient.id).update(
        {Scan.patient_id: None}, synchronize_session=False
    )
    db.delete(patient)
    db.commit()
    return True


# ----------------------------
# Scans
# ----------------------------
def list_scans(db: Session, user_id: str) -> List[Scan]:
    return db.query(Scan).filter(Scan.user_id == user_id).order_by(Scan.created_at.desc()).all()


def get_scan(db: Session, scan_id: str, user_id: str) -> Optional[Scan]:
    return db.query(Scan).filter(Scan.id == scan_id, Scan.user_id == user_id).first()


def create_scan(db: Session, user_id: str, image_url: str, **fields) -> Scan:
    scan = Scan(user_id=user_id, image_url=image_url, **fields)
    db.add(scan)
    db.commit()
    db.refresh(scan)
    return scan


def finish_scan(db: Session, scan_id: str, status: str, **fields) -> bool:
    """
    Move a PROCESSING scan to its terminal status.

    The update is conditional on the current status, so a scan that has
    already completed or failed is left untouched and False is returned.
    """
    values = {Scan.status: status, Scan.updated_at: datetime.utcnow()}
    values.update({getattr(Scan, key): value for key, value in fields.items()})
    updated = (
        db.query(Scan)
        .filter(Scan.id == scan_id, Scan.status == ScanStatus.PROCESSING)
        .update(values, synchronize_session=False)
    )
    db.commit()
    return updated == 1
