"""Scan draft lifecycle: fill in, submit once, archive, reset."""

import logging
from datetime import datetime, timezone

from scandesk.models.form import ScanRecord, UploadedScan
from scandesk.models.services import InferenceResponse
from scandesk.services.form_state import FormStateContainer, FormValidationError
from scandesk.services.inference import process_image
from scandesk.services.persistence import DiagnosticsStore

logger = logging.getLogger(__name__)


class ScanValidationError(FormValidationError):
    pass


def missing_scan_fields(scan: ScanRecord) -> list[str]:
    required = {
        "image": scan.image,
        "scanType": scan.scan_type,
        "diagnosisArea": scan.diagnosis_area,
        "bodyPartImaged": scan.body_part_imaged,
    }
    return [name for name, value in required.items() if not value]


def submit_scan(container: FormStateContainer, now: datetime | None = None) -> UploadedScan:
    """Archive the current draft into recent uploads and reset it.

    The draft passes through ``is_submitted=True`` exactly once: a draft that
    is already submitted is rejected, as is one with required fields missing.
    """
    scan = container.get_state().current_scan
    if scan.is_submitted:
        raise ScanValidationError("This scan has already been submitted.")
    missing = missing_scan_fields(scan)
    if missing:
        raise ScanValidationError(f"Missing required scan information: {', '.join(missing)}")

    now = now or datetime.now(timezone.utc)
    container.update({"current_scan": scan.model_copy(update={"is_submitted": True})})

    upload = UploadedScan(
        id=str(int(now.timestamp() * 1000)),
        image=scan.image,
        scan_type=scan.scan_type,
        diagnosis_area=scan.diagnosis_area,
        body_part_imaged=scan.body_part_imaged,
        fractured_bone=scan.fractured_bone or None,
        date=now.date().isoformat(),
    )
    container.add_upload(upload)
    container.update({"current_scan": ScanRecord()})
    logger.info("Archived %s upload %s", upload.scan_type, upload.id)
    return upload


def delete_scan_image(container: FormStateContainer) -> ScanRecord:
    """Drop the image and body-part details, keeping scan type and area."""
    scan = container.get_state().current_scan
    cleared = scan.model_copy(update={
        "image": None,
        "is_submitted": False,
        "body_part_imaged": "",
        "fractured_bone": "",
    })
    return container.update({"current_scan": cleared}).current_scan


async def analyze_upload(upload: UploadedScan, diagnostics: DiagnosticsStore) -> InferenceResponse:
    """Run inference for an archived upload and keep the latest output."""
    response = await process_image(upload.image, upload.diagnosis_area)
    if response.ok:
        if response.result is not None:
            diagnostics.save_result(response.result.model_dump())
        if response.heatmap:
            diagnostics.save_heatmap(response.heatmap)
    else:
        logger.warning("Inference failed for upload %s: %s", upload.id, response.message)
    return response
