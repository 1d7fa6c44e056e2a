import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from scandesk.models.services import (
    PdfUploadRequest,
    Report,
    ServiceResult,
    ShareReportRequest,
    SummaryAnalysis,
    SummaryAnalysisRequest,
)
from scandesk.services.form_state import FormValidationError
from scandesk.services.llm import LLMClient, get_llm_client
from scandesk.services.sessions import BrowserSession, get_browser_session
from scandesk.services.sharing import build_share_request, submit_scan_results, upload_pdf
from scandesk.services.summary import build_report, generate_summary_analysis

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reports"])


@router.post("/api/summary-analysis", response_model=SummaryAnalysis)
async def summary_analysis(body: SummaryAnalysisRequest, llm: LLMClient = Depends(get_llm_client)):
    """Analysis and recommendations paragraphs for a scan."""
    if not body.scan_type or not body.diagnosis_area:
        return JSONResponse(status_code=400, content={"error": "Missing required scan information"})
    try:
        return await generate_summary_analysis(body, llm)
    except Exception as e:
        logger.error("Summary analysis API error: %s", e)
        return JSONResponse(status_code=500, content={"error": "Failed to generate analysis"})


@router.get("/api/report", response_model=Report)
async def get_report(
    session: BrowserSession = Depends(get_browser_session),
    llm: LLMClient = Depends(get_llm_client),
):
    """Compile the summary report for the most recent upload."""
    return await build_report(
        session.container.get_state(),
        llm,
        model_result=session.diagnostics.load_result(),
        heatmap=session.diagnostics.load_heatmap(),
    )


@router.post("/api/share", response_model=ServiceResult)
async def share_report(body: ShareReportRequest, session: BrowserSession = Depends(get_browser_session)):
    """Send the report to every recipient on the share form."""
    try:
        request = build_share_request(session.container.get_state(), body.pdf_data, body.pdf_id)
    except FormValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    result = await submit_scan_results(request)
    if result.status == "success":
        session.notify("Results shared", result.message or "The report has been sent.")
    else:
        session.notify("Sharing failed", result.message or "The report could not be sent.", variant="destructive")
    return result


@router.post("/api/report/pdf", response_model=ServiceResult)
async def upload_report_pdf(body: PdfUploadRequest, session: BrowserSession = Depends(get_browser_session)):
    result = await upload_pdf(body.pdf_data, body.filename)
    if result.status != "success":
        session.notify("PDF upload failed", result.message or "", variant="destructive")
    return result
