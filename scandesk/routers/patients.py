import logging

from fastapi import APIRouter, Depends, HTTPException, Response

from scandesk.models.form import PatientInfo
from scandesk.models.patient import PatientRecord, SaveResult
from scandesk.services.patients import get_patient_record, list_patient_records, save_patient_record
from scandesk.services.sessions import BrowserSession, get_browser_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/patients", tags=["patients"])


@router.post("", response_model=SaveResult)
async def create_patient(
    response: Response,
    body: PatientInfo | None = None,
    session: BrowserSession = Depends(get_browser_session),
):
    """Save a patient record; without a body the session's patient form is used."""
    info = body if body is not None else session.container.get_state().patient_info
    result = await save_patient_record(info)
    if not result.success:
        response.status_code = 400
    return result


@router.get("", response_model=list[PatientRecord])
async def list_patients():
    return await list_patient_records()


@router.get("/{patient_id}", response_model=PatientRecord)
async def get_patient(patient_id: int):
    record = await get_patient_record(patient_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Patient not found")
    return record
