import asyncio
import logging
import random
from datetime import date
from typing import Any

from scandesk.models.form import FormData, UploadedScan
from scandesk.models.services import Report, SummaryAnalysis, SummaryAnalysisRequest
from scandesk.services.llm import LLMClient

logger = logging.getLogger(__name__)

NO_SCAN_PARAGRAPHS = ["No scan data available.", "", ""]

ANALYSIS_PROMPT = (
    "Generate a detailed medical analysis paragraph for a {scan_type} of the {body_part}{bone} "
    "focusing on {area}. The analysis should be professional, detailed but concise (100-150 words), "
    "and describe potential findings without making definitive claims. Include appropriate medical terminology."
)

RECOMMENDATIONS_PROMPT = (
    "Based on a {scan_type} of the {body_part}{bone} focusing on {area}, generate a concise paragraph "
    "(60-80 words) of medical recommendations. Include appropriate next steps, potential specialist "
    "referrals, and follow-up procedures. Be professional and avoid making definitive claims."
)

_RECOMMENDATIONS = {
    "Bone Fractures": (
        "orthopedic consultation for fracture management and follow-up imaging in 4-6 weeks "
        "to assess healing progress."
    ),
    "Brain Tumors": (
        "neurosurgical consultation, additional MRI with spectroscopy, and consideration for "
        "stereotactic biopsy."
    ),
    "Breast Cancer": (
        "surgical consultation, consideration for ultrasound-guided biopsy, and comprehensive "
        "breast cancer screening."
    ),
    "Lung Cancer": (
        "pulmonology consultation, PET-CT for staging, and consideration for CT-guided biopsy "
        "or bronchoscopy."
    ),
}


def _bone_suffix(fractured_bone: str | None) -> str:
    return f" ({fractured_bone})" if fractured_bone else ""


def intro_paragraph(scan: UploadedScan) -> str:
    return (
        f"This report presents the findings from a {scan.scan_type} examination of the patient's "
        f"{scan.body_part_imaged.lower()}{_bone_suffix(scan.fractured_bone)}, focusing on the assessment "
        f"of {scan.diagnosis_area.lower()}. The scan was performed using standard protocols and evaluated "
        "by our AI-assisted diagnostic system in conjunction with medical professionals."
    )


def fallback_analysis(scan: SummaryAnalysisRequest | UploadedScan, rng: random.Random | None = None) -> str:
    """Static analysis paragraph used when the language model is unavailable."""
    rng = rng or random.Random()
    scan_type, area = scan.scan_type, scan.diagnosis_area

    if area == "Bone Fractures":
        subject = f"the {scan.fractured_bone} shows" if scan.fractured_bone else "there are"
        return (
            f"Analysis of the {scan_type} reveals {subject} signs consistent with a fracture. "
            "The fracture line is visible with moderate displacement. There is minimal surrounding "
            "soft tissue swelling and no evidence of joint involvement."
        )
    if area == "Brain Tumors":
        return (
            f"The {scan_type} of the brain demonstrates a {rng.randint(1, 3)}cm lesion in the "
            f"{rng.choice(['frontal', 'temporal', 'parietal', 'occipital'])} lobe. The mass shows "
            f"{rng.choice(['homogeneous', 'heterogeneous'])} enhancement with contrast. There is minimal "
            "surrounding edema and no midline shift observed."
        )
    if area == "Breast Cancer":
        return (
            f"Examination of the breast tissue reveals a {rng.randint(1, 2)}cm "
            f"{rng.choice(['well-defined', 'irregular'])} mass in the "
            f"{rng.choice(['upper outer', 'upper inner', 'lower outer', 'lower inner'])} quadrant. "
            f"The lesion demonstrates {rng.choice(['spiculated', 'smooth'])} margins and "
            f"{rng.choice(['increased', 'heterogeneous'])} density."
        )
    if area == "Lung Cancer":
        return (
            f"The {scan_type} of the chest shows a {rng.randint(2, 4)}cm "
            f"{rng.choice(['solid', 'part-solid', 'ground-glass'])} nodule in the "
            f"{rng.choice(['right upper', 'right middle', 'right lower', 'left upper', 'left lower'])} lobe. "
            f"The lesion has {rng.choice(['smooth', 'irregular', 'spiculated'])} margins."
        )
    return (
        f"The {scan_type} examination reveals findings consistent with the clinical suspicion of "
        f"{area.lower()}. The affected area shows characteristic changes that warrant further "
        "clinical correlation."
    )


def fallback_recommendations(scan: SummaryAnalysisRequest | UploadedScan) -> str:
    advice = _RECOMMENDATIONS.get(
        scan.diagnosis_area,
        "clinical correlation with the patient's symptoms and additional diagnostic tests as appropriate.",
    )
    return f"Based on these findings, we recommend {advice}"


def fallback_summary(scan: SummaryAnalysisRequest | UploadedScan, rng: random.Random | None = None) -> SummaryAnalysis:
    return SummaryAnalysis(
        analysis=fallback_analysis(scan, rng),
        recommendations=fallback_recommendations(scan),
    )


async def generate_summary_analysis(request: SummaryAnalysisRequest, llm: LLMClient) -> SummaryAnalysis:
    """Generate the analysis and recommendations paragraphs.

    Uses static fallback text when no language model is configured; errors
    from a configured model propagate to the caller.
    """
    if not llm.available():
        return fallback_summary(request)

    fields = {
        "scan_type": request.scan_type,
        "body_part": request.body_part_imaged.lower(),
        "bone": _bone_suffix(request.fractured_bone),
        "area": request.diagnosis_area.lower(),
    }
    analysis, recommendations = await asyncio.gather(
        llm.complete([{"role": "user", "content": ANALYSIS_PROMPT.format(**fields)}]),
        llm.complete([{"role": "user", "content": RECOMMENDATIONS_PROMPT.format(**fields)}]),
    )
    return SummaryAnalysis(analysis=analysis, recommendations=recommendations)


def report_filename(last_name: str, today: date | None = None) -> str:
    today = today or date.today()
    return f"medical_report_{last_name}_{today.isoformat()}.pdf"


async def build_report(
    state: FormData,
    llm: LLMClient,
    model_result: dict[str, Any] | None = None,
    heatmap: str | None = None,
    today: date | None = None,
) -> Report:
    """Compile the summary report for the most recent upload."""
    latest = state.recent_uploads[0] if state.recent_uploads else None
    filename = report_filename(state.patient_info.last_name, today)

    if latest is None:
        paragraphs = list(NO_SCAN_PARAGRAPHS)
    elif model_result:
        fallback = fallback_summary(latest)
        paragraphs = [intro_paragraph(latest), fallback.analysis, fallback.recommendations]
    else:
        request = SummaryAnalysisRequest(
            scan_type=latest.scan_type,
            diagnosis_area=latest.diagnosis_area,
            body_part_imaged=latest.body_part_imaged,
            fractured_bone=latest.fractured_bone,
        )
        try:
            summary = await generate_summary_analysis(request, llm)
        except Exception as e:
            logger.error("Summary analysis failed, using fallback content: %s", e)
            summary = fallback_summary(latest)
        paragraphs = [intro_paragraph(latest), summary.analysis, summary.recommendations]

    return Report(
        patient_info=state.patient_info,
        latest_scan=latest,
        paragraphs=paragraphs,
        model_result=model_result,
        heatmap=heatmap,
        filename=filename,
    )
