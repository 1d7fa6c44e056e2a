"""Request/response contracts for the external services and API payloads."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from scandesk.models.form import ChatMessage, FormData, PatientInfo, UploadedScan


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Notification(BaseModel):
    """Transient user-facing notice (toast)."""
    title: str
    description: str = ""
    variant: Literal["default", "destructive"] = "default"


# --- Chat completion ---


class CompletionMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ScanInfo(CamelModel):
    scan_type: str = ""
    diagnosis_area: str = ""
    body_part_imaged: str = ""
    fractured_bone: str | None = None


class ChatRequest(CamelModel):
    messages: list[CompletionMessage]
    scan_info: ScanInfo | None = None


class ChatResponse(BaseModel):
    text: str


class SendMessageRequest(BaseModel):
    content: str


class SendMessageResponse(CamelModel):
    chat_messages: list[ChatMessage]
    notification: Notification | None = None


# --- Image inference ---


class InferenceResult(BaseModel):
    diagnosis: str = ""
    confidence: float = 0.0
    probabilities: dict[str, float] = {}


class InferenceResponse(BaseModel):
    status: str
    result: InferenceResult | None = None
    heatmap: str | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "success"


class ScanSubmission(BaseModel):
    upload: UploadedScan
    inference: InferenceResponse
    state: FormData


# --- Report sharing ---


class ShareRequest(BaseModel):
    receiver_emails: list[str]
    subject: str | None = None
    description: str | None = None
    scan_type: str | None = None
    diagnosis_area: str | None = None
    pdf_data: str | None = None
    pdf_id: str | None = None


class ServiceResult(BaseModel):
    """Generic `{status, message}` reply from the sharing backend."""
    model_config = ConfigDict(extra="allow")

    status: str
    message: str | None = None


class PdfUploadRequest(BaseModel):
    pdf_data: str
    filename: str | None = None


class ShareReportRequest(BaseModel):
    pdf_data: str | None = None
    pdf_id: str | None = None


# --- Summary analysis ---


class SummaryAnalysisRequest(CamelModel):
    scan_type: str = ""
    diagnosis_area: str = ""
    body_part_imaged: str = ""
    fractured_bone: str | None = None


class SummaryAnalysis(BaseModel):
    analysis: str
    recommendations: str


class Report(CamelModel):
    patient_info: PatientInfo
    latest_scan: UploadedScan | None = None
    paragraphs: list[str]
    model_result: dict[str, Any] | None = None
    heatmap: str | None = None
    filename: str


# --- Stream events ---


class StateEvent(BaseModel):
    type: Literal["state"] = "state"
    data: FormData = Field(default_factory=FormData)


class NotificationEvent(Notification):
    type: Literal["notification"] = "notification"
