"""Session-scoped form state container.

The container is the only owner of a browser session's FormData. Every
mutation writes the new tree through to the store, then replaces the
in-memory copy and notifies subscribers, all without yielding to the event
loop.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from scandesk.config import RECENT_UPLOADS_CAP
from scandesk.models.form import ChatMessage, FormData, PartialFormData, UploadedScan
from scandesk.services.persistence import DiagnosticsStore, FormStateStore

logger = logging.getLogger(__name__)

Subscriber = Callable[[FormData], None]


class FormValidationError(ValueError):
    """Input rejected before any state change or network call."""


def default_form_data() -> FormData:
    return FormData()


def push_recent(items: Sequence[UploadedScan], item: UploadedScan, cap: int = RECENT_UPLOADS_CAP) -> list[UploadedScan]:
    """Prepend ``item`` and keep at most ``cap`` entries, newest first."""
    return [item, *items][:cap]


class FormStateContainer:
    def __init__(
        self,
        store: FormStateStore,
        diagnostics: DiagnosticsStore | None = None,
    ) -> None:
        self.store = store
        self.diagnostics = diagnostics
        self._subscribers: list[Subscriber] = []
        loaded = store.load()
        if loaded is None:
            logger.debug("No persisted form state, starting from defaults")
        self._state = loaded if loaded is not None else default_form_data()

    def get_state(self) -> FormData:
        return self._state.model_copy(deep=True)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a change callback. Returns a function that removes it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def update(self, partial: PartialFormData | Mapping[str, Any]) -> FormData:
        """Shallow-merge ``partial`` into the state at the top level.

        Nested objects in ``partial`` replace the stored ones wholesale:
        ``update({"patientInfo": {"lastName": "X"}})`` resets every other
        patient field to its empty default. Pass the full nested object to
        keep its other fields.
        """
        if not isinstance(partial, PartialFormData):
            partial = PartialFormData.model_validate(partial)
        merged = self._state.model_dump()
        merged.update(partial.model_dump(exclude_unset=True))
        return self._commit(FormData.model_validate(merged))

    def clear(self) -> FormData:
        self.store.clear()
        if self.diagnostics is not None:
            self.diagnostics.clear()
        self._state = default_form_data()
        self._notify()
        return self.get_state()

    def add_upload(self, scan: UploadedScan) -> FormData:
        uploads = push_recent(self._state.recent_uploads, scan)
        return self._commit(self._state.model_copy(update={"recent_uploads": uploads}))

    def set_chat_messages(self, messages: Sequence[ChatMessage | Mapping[str, Any]]) -> FormData:
        return self.update({"chat_messages": list(messages)})

    def _commit(self, new_state: FormData) -> FormData:
        # A failed write leaves the previous state in place.
        self.store.save(new_state)
        self._state = new_state
        self._notify()
        return self.get_state()

    def _notify(self) -> None:
        snapshot = self.get_state()
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Form state subscriber failed")
