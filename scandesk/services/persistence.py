"""Persistence of the serialized form state blob and the last model output.

Reads fail soft: anything missing, unparseable or invalid comes back as
``None`` and is logged, never raised. Writes against a missing or unavailable
backend are silent no-ops.
"""

import json
import logging
from typing import Any

from pydantic import ValidationError

from scandesk.models.form import FormData
from scandesk.services.storage import StorageBackend

logger = logging.getLogger(__name__)

FORM_DATA_KEY = "formData"
MODEL_RESULT_KEY = "diagnosticsModelResult"
HEATMAP_KEY = "diagnosticsHeatmap"


def _usable(backend: StorageBackend | None) -> bool:
    return backend is not None and backend.available()


class FormStateStore:
    """Reads and writes the whole FormData tree under one fixed key."""

    def __init__(self, backend: StorageBackend | None, key: str = FORM_DATA_KEY) -> None:
        self.backend = backend
        self.key = key

    def load(self) -> FormData | None:
        if not _usable(self.backend):
            return None
        raw = self.backend.get_item(self.key)
        if raw is None:
            return None
        try:
            return FormData.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Discarding unreadable form state under %s: %s", self.key, e.errors()[:1])
            return None

    def save(self, state: FormData) -> None:
        if not _usable(self.backend):
            return
        self.backend.set_item(self.key, state.model_dump_json(by_alias=True))

    def clear(self) -> None:
        if not _usable(self.backend):
            return
        self.backend.remove_item(self.key)


class DiagnosticsStore:
    """Last inference result and heatmap, kept under their own keys."""

    def __init__(self, backend: StorageBackend | None) -> None:
        self.backend = backend

    def save_result(self, result: dict[str, Any]) -> None:
        if _usable(self.backend):
            self.backend.set_item(MODEL_RESULT_KEY, json.dumps(result))

    def load_result(self) -> dict[str, Any] | None:
        if not _usable(self.backend):
            return None
        raw = self.backend.get_item(MODEL_RESULT_KEY)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Error parsing stored model result")
            return None
        return data if isinstance(data, dict) else None

    def save_heatmap(self, heatmap: str) -> None:
        if _usable(self.backend):
            self.backend.set_item(HEATMAP_KEY, heatmap)

    def load_heatmap(self) -> str | None:
        if not _usable(self.backend):
            return None
        return self.backend.get_item(HEATMAP_KEY)

    def clear(self) -> None:
        if _usable(self.backend):
            self.backend.remove_item(MODEL_RESULT_KEY)
            self.backend.remove_item(HEATMAP_KEY)
