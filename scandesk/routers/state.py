import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ValidationError

from scandesk.config import SESSION_COOKIE_NAME
from scandesk.models.form import ChatMessage, FormData, ScanRecord, UploadedScan
from scandesk.models.services import ScanSubmission, StateEvent
from scandesk.services.chat import acknowledge_scan
from scandesk.services.form_state import FormValidationError
from scandesk.services.scans import analyze_upload, delete_scan_image, submit_scan
from scandesk.services.sessions import BrowserSession, get_browser_session, get_registry
from scandesk.services.sharing import add_email, remove_email

logger = logging.getLogger(__name__)

router = APIRouter(tags=["state"])


class AddEmailBody(BaseModel):
    email: str | None = None


def _invalid(e: ValidationError) -> HTTPException:
    return HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))


@router.get("/api/state", response_model=FormData)
async def get_state(session: BrowserSession = Depends(get_browser_session)):
    """Current form state snapshot for this browser session."""
    return session.container.get_state()


@router.patch("/api/state", response_model=FormData)
async def update_state(
    partial: dict[str, Any] = Body(...),
    session: BrowserSession = Depends(get_browser_session),
):
    """Shallow top-level merge; nested objects replace the stored ones."""
    try:
        return session.container.update(partial)
    except ValidationError as e:
        raise _invalid(e)


@router.delete("/api/state", response_model=FormData)
async def clear_state(session: BrowserSession = Depends(get_browser_session)):
    return session.container.clear()


@router.post("/api/state/uploads", response_model=FormData)
async def add_upload(upload: UploadedScan, session: BrowserSession = Depends(get_browser_session)):
    return session.container.add_upload(upload)


@router.put("/api/state/chat", response_model=FormData)
async def set_chat_messages(
    messages: list[ChatMessage],
    session: BrowserSession = Depends(get_browser_session),
):
    return session.container.set_chat_messages(messages)


@router.post("/api/state/emails", response_model=FormData)
async def add_recipient(body: AddEmailBody, session: BrowserSession = Depends(get_browser_session)):
    """Add a recipient; with no ``email`` the staging field is used."""
    try:
        return add_email(session.container, body.email)
    except FormValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.delete("/api/state/emails/{email}", response_model=FormData)
async def remove_recipient(email: str, session: BrowserSession = Depends(get_browser_session)):
    return remove_email(session.container, email)


@router.post("/api/state/scan/submit", response_model=ScanSubmission)
async def submit_current_scan(session: BrowserSession = Depends(get_browser_session)):
    """Archive the scan draft, greet it in chat, and run inference on it."""
    container = session.container
    draft = container.get_state().current_scan
    try:
        upload = submit_scan(container)
    except FormValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    acknowledge_scan(container, draft)
    session.notify("Image Uploaded", "Your scan has been successfully uploaded.")

    inference = await analyze_upload(upload, session.diagnostics)
    if not inference.ok:
        session.notify(
            "Analysis failed",
            inference.message or "The image could not be analysed.",
            variant="destructive",
        )
    return ScanSubmission(upload=upload, inference=inference, state=container.get_state())


@router.delete("/api/state/scan/image", response_model=ScanRecord)
async def remove_scan_image(session: BrowserSession = Depends(get_browser_session)):
    return delete_scan_image(session.container)


@router.post("/api/session/end")
async def end_session(request: Request):
    """Session-end signal sent by the page as it unloads."""
    session_id = request.cookies.get(SESSION_COOKIE_NAME)
    if not session_id:
        return {"handlers": 0}
    return {"handlers": get_registry().end_session(session_id)}


@router.websocket("/ws/state")
async def state_stream(websocket: WebSocket):
    """Push state snapshots and notifications for the caller's session.

    A ``{"type": "session_end"}`` message clears the session, flushes the
    final state event and closes the stream.
    """
    await websocket.accept()
    session_id = websocket.cookies.get(SESSION_COOKIE_NAME)
    if not session_id:
        await websocket.send_json({"type": "error", "message": "No session cookie"})
        await websocket.close()
        return

    registry = get_registry()
    session = registry.get_or_create(session_id)
    queue = session.listen()

    async def _safe_send(data: dict) -> None:
        """Send JSON to websocket, logging on failure."""
        try:
            await websocket.send_json(data)
        except Exception:
            logger.debug("WebSocket send failed (client may have disconnected)")

    async def _forward() -> None:
        while True:
            await _safe_send(await queue.get())

    await _safe_send(StateEvent(data=session.container.get_state()).model_dump(mode="json", by_alias=True))
    forward_task = asyncio.create_task(_forward())
    ended = False
    try:
        while True:
            try:
                message = json.loads(await websocket.receive_text())
            except (KeyError, ValueError):
                logger.warning("Ignoring malformed stream message for session %s", session_id)
                continue
            if isinstance(message, dict) and message.get("type") == "session_end":
                registry.end_session(session_id)
                ended = True
                break
    except WebSocketDisconnect:
        logger.debug("State stream closed for session %s", session_id)
    finally:
        forward_task.cancel()
        session.stop_listening(queue)

    if ended:
        while not queue.empty():
            await _safe_send(queue.get_nowait())
        try:
            await websocket.close()
        except Exception:
            logger.debug("WebSocket close failed (client may have disconnected)")
