"""Pydantic models for the session-scoped dashboard form state.

Field names are snake_case in Python and camelCase on the wire and in the
persisted blob, so the stored JSON stays compatible with the front-end.
"""

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from scandesk.config import RECENT_UPLOADS_CAP

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(str(email).lower()))


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PatientInfo(CamelModel):
    """The single "current patient" slot, overwritten on each edit."""
    first_name: str = ""
    last_name: str = ""
    gender: str = ""
    date_of_birth: str = ""
    phone: str = ""
    email: str = ""
    address: str = ""
    emergency_contact_name: str = ""
    emergency_contact_relation: str = ""
    emergency_contact_phone: str = ""
    blood_group: str = ""
    allergies: str = ""
    pre_existing_conditions: str = ""
    height: str = ""
    weight: str = ""
    doctors_name: str = ""


class ScanRecord(CamelModel):
    """Draft of the scan currently being filled in."""
    image: str | None = None
    scan_type: str = ""
    diagnosis_area: str = ""
    body_part_imaged: str = ""
    fractured_bone: str | None = ""
    is_submitted: bool = False


class UploadedScan(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    image: str
    scan_type: str
    diagnosis_area: str
    body_part_imaged: str = ""
    fractured_bone: str | None = None
    date: str


class ChatMessage(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: int
    role: Literal["assistant", "user"]
    content: str


class FormData(CamelModel):
    """Complete form state tree: patient, scan draft, uploads, chat, sharing form."""
    patient_info: PatientInfo = Field(default_factory=PatientInfo)
    emails: list[str] = []
    current_email: str = ""
    subject: str = ""
    description: str = ""
    current_scan: ScanRecord = Field(default_factory=ScanRecord)
    recent_uploads: list[UploadedScan] = Field(default=[], max_length=RECENT_UPLOADS_CAP)
    chat_messages: list[ChatMessage] = []

    @field_validator("emails")
    @classmethod
    def _emails_unique_and_plausible(cls, value: list[str]) -> list[str]:
        seen: set[str] = set()
        for email in value:
            if not is_valid_email(email):
                raise ValueError(f"invalid email address: {email!r}")
            if email in seen:
                raise ValueError(f"duplicate email address: {email!r}")
            seen.add(email)
        return value


class PartialFormData(CamelModel):
    """Top-level subset of FormData accepted by a shallow merge update.

    Nested objects are validated as complete values, so any nested field the
    caller leaves out falls back to its empty default.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    patient_info: PatientInfo | None = None
    emails: list[str] | None = None
    current_email: str | None = None
    subject: str | None = None
    description: str | None = None
    current_scan: ScanRecord | None = None
    recent_uploads: list[UploadedScan] | None = None
    chat_messages: list[ChatMessage] | None = None
