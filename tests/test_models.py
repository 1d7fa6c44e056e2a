"""Tests for the form state Pydantic models."""

import pytest
from pydantic import ValidationError

from scandesk.models.form import (
    ChatMessage,
    FormData,
    PartialFormData,
    PatientInfo,
    ScanRecord,
    UploadedScan,
    is_valid_email,
)
from scandesk.models.services import InferenceResponse, ServiceResult


class TestEmailValidation:
    @pytest.mark.parametrize("email", ["a@b.com", "First.Last+tag@Clinic.ORG", "x_y@sub.domain.io"])
    def test_valid(self, email):
        assert is_valid_email(email)

    @pytest.mark.parametrize("email", ["", "not-an-email", "a@b", "a@b.c", "a b@c.com", "@c.com"])
    def test_invalid(self, email):
        assert not is_valid_email(email)


class TestFormData:
    def test_camel_case_round_trip(self):
        data = FormData.model_validate({"patientInfo": {"firstName": "Ama"}, "currentEmail": "x@y.com"})
        assert data.patient_info.first_name == "Ama"
        dumped = data.model_dump(by_alias=True)
        assert dumped["patientInfo"]["firstName"] == "Ama"
        assert dumped["currentScan"]["isSubmitted"] is False

    def test_defaults_are_independent(self):
        a, b = FormData(), FormData()
        a.emails.append("a@b.com")
        assert b.emails == []

    def test_fractured_bone_may_be_null(self):
        assert ScanRecord(fractured_bone=None).fractured_bone is None
        assert PatientInfo().height == ""


class TestImmutableRecords:
    def test_uploaded_scan_frozen(self, make_upload):
        upload = make_upload(1)
        with pytest.raises(ValidationError):
            upload.scan_type = "MRI scan"

    def test_chat_message_frozen(self):
        message = ChatMessage(id=1, role="assistant", content="Hi")
        with pytest.raises(ValidationError):
            message.content = "edited"

    def test_uploaded_scan_requires_image(self):
        with pytest.raises(ValidationError):
            UploadedScan(id="1", scan_type="X-ray scan", diagnosis_area="Bone Fractures", date="2026-10-19")


class TestPartialFormData:
    def test_only_set_fields_dumped(self):
        partial = PartialFormData.model_validate({"subject": "Hi"})
        assert partial.model_dump(exclude_unset=True) == {"subject": "Hi"}

    def test_extra_keys_forbidden(self):
        with pytest.raises(ValidationError):
            PartialFormData.model_validate({"subject": "Hi", "unknown": 1})


class TestServiceContracts:
    def test_inference_ok(self):
        assert InferenceResponse(status="success").ok
        assert not InferenceResponse(status="failure", message="down").ok

    def test_service_result_keeps_extra_fields(self):
        result = ServiceResult.model_validate({"status": "success", "pdf_id": "p1"})
        assert result.model_extra == {"pdf_id": "p1"}
