from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session, joinedload

from ...core.database import get_db
from ...core.security import TokenClaim
from ...api.deps import get_doctor_claim
from ...models.consultation import Consultation
from ...models.doctor import Doctor
from ...models.patient import Patient
from ...schemas.resources import ConsultationList, ConsultationOut

router = APIRouter(prefix="/consultations", tags=["Consultations"])

@router.get("", response_model=ConsultationList)
def list_consultations(
    claim: TokenClaim = Depends(get_doctor_claim),
    db: Session = Depends(get_db)
):
    """Consultations of the calling doctor, earliest first."""
    consultations = db.query(Consultation).join(
        Doctor, Consultation.doctor_id == Doctor.id
    ).options(
        joinedload(Consultation.patient).joinedload(Patient.user)
    ).filter(
        Doctor.user_id == claim.user_id
    ).order_by(Consultation.scheduled_time.asc()).all()

    return ConsultationList(
        consultations=[ConsultationOut.model_validate(c) for c in consultations]
    )
