from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from .auth import CamelModel, UserResponse
from ..models.consultation import ConsultationStatus

class UserEmail(CamelModel):
    email: str

class CategoryOut(CamelModel):
    id: int
    name: str

class DoctorOut(CamelModel):
    id: int
    user_id: int
    full_name: str
    phone: str
    degree: str
    experience: int
    description: str
    profile_image: Optional[str] = None
    categories: List[CategoryOut] = []

class PatientOut(CamelModel):
    id: int
    user_id: int
    full_name: str
    phone: str
    user: UserEmail

class PatientProfile(CamelModel):
    id: int
    user_id: int
    full_name: str
    phone: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user: UserResponse

class ConsultationOut(CamelModel):
    id: int
    scheduled_time: datetime
    status: ConsultationStatus
    notes: Optional[str] = None
    patient: PatientOut

class DoctorList(BaseModel):
    doctors: List[DoctorOut]

class DoctorDetail(BaseModel):
    doctor: DoctorOut

class PatientList(BaseModel):
    patients: List[PatientOut]

class PatientMe(BaseModel):
    patient: PatientProfile

class ConsultationList(BaseModel):
    consultations: List[ConsultationOut]
