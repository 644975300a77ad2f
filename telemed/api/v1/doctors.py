from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session, selectinload
from typing import Optional

from ...core.database import get_db
from ...core.exceptions import NotFoundError
from ...models.doctor import Category, Doctor
from ...schemas.resources import DoctorDetail, DoctorList, DoctorOut

router = APIRouter(prefix="/doctors", tags=["Doctors"])

@router.get("", response_model=DoctorList)
def list_doctors(
    category: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """List doctors, optionally only those in the named category."""
    query = db.query(Doctor).options(selectinload(Doctor.categories))
    if category:
        query = query.filter(Doctor.categories.any(Category.name == category))

    doctors = query.order_by(Doctor.id).all()
    return DoctorList(doctors=[DoctorOut.model_validate(doctor) for doctor in doctors])

@router.get("/{doctor_id}", response_model=DoctorDetail)
def get_doctor(
    doctor_id: int,
    db: Session = Depends(get_db)
):
    doctor = db.query(Doctor).options(
        selectinload(Doctor.categories)
    ).filter(Doctor.id == doctor_id).first()

    if not doctor:
        raise NotFoundError("Doctor not found")
    return DoctorDetail(doctor=DoctorOut.model_validate(doctor))
