from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session, joinedload

from ...core.database import get_db
from ...core.exceptions import NotFoundError
from ...core.security import TokenClaim
from ...api.deps import get_current_claim, get_doctor_claim
from ...models.patient import Patient
from ...schemas.resources import PatientList, PatientMe, PatientOut, PatientProfile

router = APIRouter(prefix="/patients", tags=["Patients"])

@router.get("", response_model=PatientList)
def list_patients(
    claim: TokenClaim = Depends(get_doctor_claim),
    db: Session = Depends(get_db)
):
    """List all patients (doctors only)."""
    patients = db.query(Patient).options(
        joinedload(Patient.user)
    ).order_by(Patient.id).all()
    return PatientList(patients=[PatientOut.model_validate(patient) for patient in patients])

@router.get("/me", response_model=PatientMe)
def get_my_profile(
    claim: TokenClaim = Depends(get_current_claim),
    db: Session = Depends(get_db)
):
    """Patient profile of the caller. 404 when the caller has none."""
    patient = db.query(Patient).options(
        joinedload(Patient.user)
    ).filter(Patient.user_id == claim.user_id).first()

    if not patient:
        raise NotFoundError("Profile not found")
    return PatientMe(patient=PatientProfile.model_validate(patient))
