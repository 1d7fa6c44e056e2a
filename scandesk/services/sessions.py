"""Browser sessions: one form state container per session cookie.

Each session is "mounted" when first seen: its container is loaded from the
namespaced store and a ``ClearOnSessionEnd`` controller is entered on the
session's ExitStack. Closing the session unwinds that stack, which detaches
the controller and drops the stream subscription. Ending a session clears it
and then closes it.
"""

import asyncio
import logging
import uuid
from collections import OrderedDict
from contextlib import ExitStack

from fastapi import Request, Response

from scandesk.config import MAX_MOUNTED_SESSIONS, SESSION_COOKIE_NAME, STATE_STORE_PATH
from scandesk.models.form import FormData
from scandesk.models.services import Notification, NotificationEvent, StateEvent
from scandesk.services.form_state import FormStateContainer
from scandesk.services.lifecycle import ClearOnSessionEnd, SessionSignals
from scandesk.services.persistence import DiagnosticsStore, FormStateStore
from scandesk.services.storage import NamespacedStorage, SQLiteStorage, StorageBackend

logger = logging.getLogger(__name__)


class BrowserSession:
    def __init__(self, session_id: str, container: FormStateContainer, diagnostics: DiagnosticsStore) -> None:
        self.session_id = session_id
        self.container = container
        self.diagnostics = diagnostics
        self._listeners: set[asyncio.Queue] = set()

    def listen(self) -> asyncio.Queue:
        """Subscribe to state and notification events for this session."""
        queue: asyncio.Queue = asyncio.Queue()
        self._listeners.add(queue)
        return queue

    def stop_listening(self, queue: asyncio.Queue) -> None:
        self._listeners.discard(queue)

    @property
    def has_listeners(self) -> bool:
        return bool(self._listeners)

    def _publish(self, event: dict) -> None:
        for queue in self._listeners:
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning("Event queue full for session %s", self.session_id)

    def on_state_change(self, state: FormData) -> None:
        self._publish(StateEvent(data=state).model_dump(mode="json", by_alias=True))

    def notify(self, title: str, description: str = "", variant: str = "default") -> Notification:
        notification = Notification(title=title, description=description, variant=variant)
        self._publish(NotificationEvent(**notification.model_dump()).model_dump(mode="json"))
        return notification


class SessionRegistry:
    """Mounted sessions, least recently used first.

    At most ``max_sessions`` stay mounted; the oldest idle one is unmounted
    when a new session would exceed the cap. Its state stays in the store and
    is reloaded on the next request.
    """

    def __init__(
        self,
        backend: StorageBackend | None,
        signals: SessionSignals | None = None,
        max_sessions: int = MAX_MOUNTED_SESSIONS,
    ) -> None:
        self.backend = backend
        self.signals = signals or SessionSignals()
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[str, BrowserSession] = OrderedDict()
        self._stacks: dict[str, ExitStack] = {}

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: str) -> BrowserSession | None:
        return self._sessions.get(session_id)

    def _storage(self, session_id: str) -> NamespacedStorage | None:
        return NamespacedStorage(self.backend, session_id) if self.backend is not None else None

    def get_or_create(self, session_id: str) -> BrowserSession:
        session = self._sessions.get(session_id)
        if session is not None:
            self._sessions.move_to_end(session_id)
            return session

        self._evict_idle()
        storage = self._storage(session_id)
        diagnostics = DiagnosticsStore(storage)
        container = FormStateContainer(FormStateStore(storage), diagnostics)
        session = BrowserSession(session_id, container, diagnostics)

        with ExitStack() as stack:
            stack.enter_context(ClearOnSessionEnd(container, self.signals, session_id))
            stack.callback(container.subscribe(session.on_state_change))
            self._stacks[session_id] = stack.pop_all()

        self._sessions[session_id] = session
        logger.info("Mounted form state for session %s", session_id)
        return session

    def _evict_idle(self) -> None:
        while len(self._sessions) >= self.max_sessions:
            idle = next((sid for sid, s in self._sessions.items() if not s.has_listeners), None)
            if idle is None:
                return
            self.close(idle)

    def end_session(self, session_id: str) -> int:
        """Deliver the session-end signal for ``session_id`` and unmount it.

        A session that is not mounted has its stored state removed directly.
        Returns the number of handlers that ran.
        """
        if session_id not in self._sessions:
            storage = self._storage(session_id)
            FormStateStore(storage).clear()
            DiagnosticsStore(storage).clear()
            return 0
        handled = self.signals.emit(session_id)
        self.close(session_id)
        return handled

    def close(self, session_id: str) -> None:
        stack = self._stacks.pop(session_id, None)
        self._sessions.pop(session_id, None)
        if stack is not None:
            stack.close()
            logger.info("Unmounted form state for session %s", session_id)

    def close_all(self) -> None:
        for session_id in list(self._stacks):
            self.close(session_id)


_registry: SessionRegistry | None = None
_backend: SQLiteStorage | None = None


def get_registry() -> SessionRegistry:
    global _registry, _backend
    if _registry is None:
        _backend = SQLiteStorage(STATE_STORE_PATH)
        _registry = SessionRegistry(_backend)
    return _registry


def close_registry() -> None:
    global _registry, _backend
    if _registry is not None:
        _registry.close_all()
        _registry = None
    if _backend is not None:
        _backend.close()
        _backend = None


def new_session_id() -> str:
    return uuid.uuid4().hex


def get_browser_session(request: Request, response: Response) -> BrowserSession:
    """FastAPI dependency: resolve (or start) the caller's browser session."""
    session_id = request.cookies.get(SESSION_COOKIE_NAME)
    if not session_id:
        session_id = new_session_id()
        response.set_cookie(SESSION_COOKIE_NAME, session_id, httponly=True, samesite="lax")
    return get_registry().get_or_create(session_id)
