"""Tests for the form state container and its bounded upload history."""

import json

import pytest
from pydantic import ValidationError

from scandesk.models.form import ChatMessage, FormData, PatientInfo
from scandesk.services.form_state import FormStateContainer, push_recent
from scandesk.services.persistence import FORM_DATA_KEY, HEATMAP_KEY, MODEL_RESULT_KEY, FormStateStore
from scandesk.services.storage import MemoryStorage


def _persisted(storage) -> dict:
    return json.loads(storage.items[FORM_DATA_KEY])


class TestDefaults:
    def test_starts_empty(self, container):
        state = container.get_state()
        assert state == FormData()
        assert state.patient_info.first_name == ""
        assert state.current_scan.image is None
        assert state.current_scan.is_submitted is False
        assert state.recent_uploads == []
        assert state.chat_messages == []

    def test_loads_persisted_state(self, storage):
        saved = FormData(subject="Follow-up", emails=["a@b.com"])
        FormStateStore(storage).save(saved)

        container = FormStateContainer(FormStateStore(storage))
        assert container.get_state() == saved

    def test_corrupt_storage_falls_back_to_defaults(self, storage):
        storage.set_item(FORM_DATA_KEY, "{not json at all")
        container = FormStateContainer(FormStateStore(storage))
        assert container.get_state() == FormData()

    def test_wrong_shape_falls_back_to_defaults(self, storage):
        storage.set_item(FORM_DATA_KEY, json.dumps({"recentUploads": "nope"}))
        container = FormStateContainer(FormStateStore(storage))
        assert container.get_state() == FormData()

    def test_no_backend_still_works(self):
        container = FormStateContainer(FormStateStore(None))
        container.update({"subject": "Offline"})
        assert container.get_state().subject == "Offline"


class TestUploadHistory:
    def test_push_recent_prepends_and_caps(self, make_upload):
        items = [make_upload(i) for i in range(5)]
        result = push_recent(items, make_upload(99))
        assert len(result) == 5
        assert result[0].id == make_upload(99).id
        assert make_upload(4).id not in [u.id for u in result]

    def test_six_inserts_keep_five_newest_first(self, container, make_upload):
        uploads = [make_upload(i) for i in range(6)]
        for upload in uploads:
            container.add_upload(upload)

        recent = container.get_state().recent_uploads
        assert len(recent) == 5
        assert [u.id for u in recent] == [u.id for u in reversed(uploads[1:])]
        assert uploads[0].id not in [u.id for u in recent]

    def test_add_upload_is_persisted(self, container, storage, make_upload):
        container.add_upload(make_upload(1))
        persisted = _persisted(storage)
        assert persisted["recentUploads"][0]["id"] == make_upload(1).id
        assert persisted["recentUploads"][0]["scanType"] == "X-ray scan"

    def test_update_rejects_more_than_cap(self, container, make_upload):
        with pytest.raises(ValidationError):
            container.update({"recentUploads": [make_upload(i) for i in range(6)]})
        assert container.get_state().recent_uploads == []


class TestShallowMerge:
    def test_spread_prior_changes_only_one_field(self, container):
        container.update({"patientInfo": {"firstName": "Ama", "lastName": "Mensah", "bloodGroup": "O+"}})
        prior = container.get_state().patient_info

        container.update({"patient_info": prior.model_copy(update={"last_name": "X"})})

        info = container.get_state().patient_info
        assert info.last_name == "X"
        assert info.first_name == "Ama"
        assert info.blood_group == "O+"

    def test_partial_nested_object_drops_other_fields(self, container):
        container.update({"patientInfo": {"firstName": "Ama", "lastName": "Mensah", "bloodGroup": "O+"}})

        container.update({"patientInfo": {"lastName": "X"}})

        info = container.get_state().patient_info
        assert info.last_name == "X"
        assert info.first_name == ""
        assert info.blood_group == ""

    def test_top_level_keys_not_in_partial_are_kept(self, container):
        container.update({"subject": "Report", "description": "Please review"})
        container.update({"subject": "Updated"})
        state = container.get_state()
        assert state.subject == "Updated"
        assert state.description == "Please review"

    def test_accepts_snake_and_camel_keys(self, container):
        container.update({"current_email": "x@y.com"})
        container.update({"currentScan": {"scanType": "MRI scan"}})
        state = container.get_state()
        assert state.current_email == "x@y.com"
        assert state.current_scan.scan_type == "MRI scan"

    def test_unknown_key_rejected_without_change(self, container, storage):
        container.update({"subject": "Keep me"})
        before = storage.items[FORM_DATA_KEY]
        with pytest.raises(ValidationError):
            container.update({"subject": "Lost", "notAField": 1})
        assert container.get_state().subject == "Keep me"
        assert storage.items[FORM_DATA_KEY] == before

    def test_invalid_emails_rejected(self, container):
        with pytest.raises(ValidationError):
            container.update({"emails": ["not-an-email"]})
        with pytest.raises(ValidationError):
            container.update({"emails": ["a@b.com", "a@b.com"]})
        assert container.get_state().emails == []

    def test_every_update_written_through(self, container, storage):
        container.update({"patientInfo": PatientInfo(first_name="Kofi")})
        assert _persisted(storage)["patientInfo"]["firstName"] == "Kofi"
        container.update({"subject": "Scan results"})
        assert _persisted(storage)["subject"] == "Scan results"


class TestSnapshots:
    def test_get_state_is_a_copy(self, container):
        snapshot = container.get_state()
        snapshot.emails.append("sneaky@b.com")
        snapshot.patient_info.first_name = "Changed"
        state = container.get_state()
        assert state.emails == []
        assert state.patient_info.first_name == ""


class TestChatMessages:
    def test_set_chat_messages_replaces_whole_list(self, container, storage):
        container.set_chat_messages([ChatMessage(id=1, role="assistant", content="Hi")])
        container.set_chat_messages([
            {"id": 2, "role": "user", "content": "Hello"},
            {"id": 3, "role": "assistant", "content": "How can I help?"},
        ])
        messages = container.get_state().chat_messages
        assert [m.id for m in messages] == [2, 3]
        assert [m["id"] for m in _persisted(storage)["chatMessages"]] == [2, 3]

    def test_invalid_role_rejected(self, container):
        with pytest.raises(ValidationError):
            container.set_chat_messages([{"id": 1, "role": "system", "content": "x"}])


class TestClear:
    def test_clear_resets_and_removes_keys(self, container, storage, make_upload):
        container.update({"subject": "Something"})
        container.add_upload(make_upload(1))
        container.diagnostics.save_result({"diagnosis": "Fracture"})
        container.diagnostics.save_heatmap("AAAA")

        state = container.clear()

        assert state == FormData()
        assert container.get_state() == FormData()
        assert FORM_DATA_KEY not in storage.items
        assert MODEL_RESULT_KEY not in storage.items
        assert HEATMAP_KEY not in storage.items


class TestSubscribers:
    def test_notified_after_each_mutation(self, container, make_upload):
        seen = []
        container.subscribe(seen.append)
        container.update({"subject": "A"})
        container.add_upload(make_upload(1))
        container.set_chat_messages([])
        container.clear()
        assert len(seen) == 4
        assert seen[0].subject == "A"
        assert seen[-1] == FormData()

    def test_subscriber_sees_persisted_state(self, container, storage):
        observed = []
        container.subscribe(lambda state: observed.append(_persisted(storage)["subject"]))
        container.update({"subject": "Synced"})
        assert observed == ["Synced"]

    def test_unsubscribe(self, container):
        seen = []
        unsubscribe = container.subscribe(seen.append)
        unsubscribe()
        container.update({"subject": "A"})
        assert seen == []

    def test_failing_subscriber_does_not_break_update(self, container):
        seen = []

        def _boom(state):
            raise RuntimeError("render failed")

        container.subscribe(_boom)
        container.subscribe(seen.append)
        container.update({"subject": "Still works"})
        assert container.get_state().subject == "Still works"
        assert len(seen) == 1


class _FailingWrites(MemoryStorage):
    """Reads work; every write or delete raises, like a full disk."""

    def set_item(self, key: str, value: str) -> None:
        raise OSError("disk full")

    def remove_item(self, key: str) -> None:
        raise OSError("disk full")


class TestFailedWrites:
    def test_failed_save_keeps_previous_state(self):
        storage = _FailingWrites({FORM_DATA_KEY: FormData(subject="Saved").model_dump_json(by_alias=True)})
        container = FormStateContainer(FormStateStore(storage))
        seen = []
        container.subscribe(seen.append)

        with pytest.raises(OSError):
            container.update({"subject": "Unsaved"})

        assert container.get_state().subject == "Saved"
        assert FormData.model_validate_json(storage.items[FORM_DATA_KEY]).subject == "Saved"
        assert seen == []

    def test_failed_add_upload_keeps_history(self, make_upload):
        container = FormStateContainer(FormStateStore(_FailingWrites()))
        with pytest.raises(OSError):
            container.add_upload(make_upload(1))
        assert container.get_state().recent_uploads == []

    def test_failed_clear_keeps_state(self):
        storage = _FailingWrites({FORM_DATA_KEY: FormData(subject="Saved").model_dump_json(by_alias=True)})
        container = FormStateContainer(FormStateStore(storage))
        with pytest.raises(OSError):
            container.clear()
        assert container.get_state().subject == "Saved"
        assert FORM_DATA_KEY in storage.items
