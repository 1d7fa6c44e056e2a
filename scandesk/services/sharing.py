"""Share form handling and the report-sharing backend calls."""

import asyncio
import logging

import httpx

from scandesk.config import INFERENCE_API_URL, PDF_UPLOAD_TIMEOUT_SECONDS, SHARE_TIMEOUT_SECONDS
from scandesk.models.form import FormData, is_valid_email
from scandesk.models.services import ServiceResult, ShareRequest
from scandesk.services.form_state import FormStateContainer, FormValidationError

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Request timed out. The server took too long to respond."


class EmailValidationError(FormValidationError):
    pass


def add_email(container: FormStateContainer, email: str | None = None) -> FormData:
    """Add a recipient, taken from the staging field unless given explicitly."""
    state = container.get_state()
    candidate = (state.current_email if email is None else email).strip()
    if not candidate:
        raise EmailValidationError("Please enter an email address.")
    if not is_valid_email(candidate):
        raise EmailValidationError("Invalid Email")
    if candidate in state.emails:
        raise EmailValidationError("This email has already been added.")
    return container.update({"emails": [*state.emails, candidate], "current_email": ""})


def remove_email(container: FormStateContainer, email: str) -> FormData:
    state = container.get_state()
    return container.update({"emails": [e for e in state.emails if e != email]})


def build_share_request(state: FormData, pdf_data: str | None = None, pdf_id: str | None = None) -> ShareRequest:
    if not state.emails:
        raise EmailValidationError("No Email Address Found")
    latest = state.recent_uploads[0] if state.recent_uploads else None
    return ShareRequest(
        receiver_emails=list(state.emails),
        subject=state.subject or None,
        description=state.description or None,
        scan_type=latest.scan_type if latest else None,
        diagnosis_area=latest.diagnosis_area if latest else None,
        pdf_data=pdf_data,
        pdf_id=pdf_id,
    )


def _http_client(timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=INFERENCE_API_URL, timeout=timeout)


async def submit_scan_results(request: ShareRequest) -> ServiceResult:
    try:
        async with _http_client(SHARE_TIMEOUT_SECONDS) as client:
            resp = await client.post("/submit-scan", json=request.model_dump(exclude_none=True))
            if resp.status_code >= 400:
                raise RuntimeError(f"Server responded with status: {resp.status_code}")
            return ServiceResult.model_validate(resp.json())
    except Exception as e:
        logger.error("Error submitting scan results: %s", e)
        return ServiceResult(status="failure", message=str(e) or "Unknown error occurred")


async def _post_pdf(pdf_data: str, filename: str | None) -> ServiceResult:
    async with _http_client(PDF_UPLOAD_TIMEOUT_SECONDS) as client:
        resp = await client.post("/upload-pdf", json={"pdf_data": pdf_data, "filename": filename})
        if resp.status_code >= 400:
            raise RuntimeError(f"Server responded with status: {resp.status_code}. Details: {resp.text}")
        return ServiceResult.model_validate(resp.json())


async def upload_pdf(pdf_data: str, filename: str | None = None) -> ServiceResult:
    """Upload a rendered report; gives up after PDF_UPLOAD_TIMEOUT_SECONDS."""
    try:
        return await asyncio.wait_for(_post_pdf(pdf_data, filename), timeout=PDF_UPLOAD_TIMEOUT_SECONDS)
    except (asyncio.TimeoutError, httpx.TimeoutException):
        logger.error("PDF upload timed out after %ss", PDF_UPLOAD_TIMEOUT_SECONDS)
        return ServiceResult(status="failure", message=TIMEOUT_MESSAGE)
    except Exception as e:
        logger.error("Error uploading PDF: %s", e)
        return ServiceResult(status="failure", message=str(e) or "Unknown error occurred")
