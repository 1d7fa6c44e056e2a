"""Session-end signalling and the controller that clears form state on it.

The page reports that it is being closed or reloaded away from; the hub
delivers that signal to whichever handlers are attached for the session.
``ClearOnSessionEnd`` attaches on enter and always detaches on exit, so a
handler bound to a discarded container can never fire.
"""

import logging
from collections.abc import Callable

from scandesk.services.form_state import FormStateContainer

logger = logging.getLogger(__name__)

SessionEndHandler = Callable[[], None]


class SessionSignals:
    """In-memory registry of session-end handlers, keyed by session id."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[SessionEndHandler]] = {}

    def subscribe(self, session_id: str, handler: SessionEndHandler) -> None:
        self._handlers.setdefault(session_id, []).append(handler)

    def unsubscribe(self, session_id: str, handler: SessionEndHandler) -> None:
        handlers = self._handlers.get(session_id)
        if not handlers:
            return
        if handler in handlers:
            handlers.remove(handler)
        if not handlers:
            del self._handlers[session_id]

    def handler_count(self, session_id: str) -> int:
        return len(self._handlers.get(session_id, []))

    def emit(self, session_id: str) -> int:
        """Deliver one session-end event. Returns the number of handlers run."""
        handlers = list(self._handlers.get(session_id, []))
        for handler in handlers:
            handler()
        logger.info("Session end for %s delivered to %d handler(s)", session_id, len(handlers))
        return len(handlers)


class ClearOnSessionEnd:
    """Clear a container whenever its session ends, while attached."""

    def __init__(self, container: FormStateContainer, signals: SessionSignals, session_id: str) -> None:
        self.container = container
        self.signals = signals
        self.session_id = session_id
        self._attached = False

    def _handle_session_end(self) -> None:
        self.container.clear()

    def attach(self) -> None:
        if self._attached:
            raise RuntimeError(f"Session-end handler already attached for {self.session_id}")
        self.signals.subscribe(self.session_id, self._handle_session_end)
        self._attached = True

    def detach(self) -> None:
        if not self._attached:
            return
        self.signals.unsubscribe(self.session_id, self._handle_session_end)
        self._attached = False

    @property
    def attached(self) -> bool:
        return self._attached

    def __enter__(self) -> "ClearOnSessionEnd":
        self.attach()
        return self

    def __exit__(self, *exc_info) -> None:
        self.detach()
