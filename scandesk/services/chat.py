"""Diagnostics chat assistant.

The transcript lives in the form state and is always written back as a
whole list. Replies use the single-shot completion contract (``{"text"}``);
streamed deltas are not supported.
"""

import logging
import time

from scandesk.models.form import ChatMessage, ScanRecord
from scandesk.models.services import ChatRequest, Notification, ScanInfo
from scandesk.services.form_state import FormStateContainer
from scandesk.services.llm import LLMClient

logger = logging.getLogger(__name__)

ASSISTANT_NAME = "Kwaku"
GREETING = f"Hello, my name is {ASSISTANT_NAME} from diagnostics AI. I'm here to assist you."

SYSTEM_PROMPT = (
    f"You are {ASSISTANT_NAME}, a diagnostics assistant in a medical imaging dashboard. "
    "You help clinicians understand uploaded scans and AI-assisted findings. "
    "Be concise and professional, use appropriate medical terminology, and never "
    "present a finding as a definitive diagnosis."
)


def scan_acknowledgement(scan_type: str, diagnosis_area: str) -> str:
    return f"I see you've uploaded a {scan_type} for a diagnosis focused on {diagnosis_area}. Let's get started!"


def next_message_id(messages: list[ChatMessage]) -> int:
    """Epoch milliseconds, bumped past the last id so ids stay increasing."""
    now_ms = time.time_ns() // 1_000_000
    if messages:
        return max(now_ms, messages[-1].id + 1)
    return now_ms


def ensure_greeting(container: FormStateContainer) -> list[ChatMessage]:
    messages = container.get_state().chat_messages
    if messages:
        return messages
    greeting = ChatMessage(id=1, role="assistant", content=GREETING)
    return container.set_chat_messages([greeting]).chat_messages


def acknowledge_scan(container: FormStateContainer, scan: ScanRecord) -> list[ChatMessage]:
    """Append the upload acknowledgement when only the greeting is present."""
    messages = ensure_greeting(container)
    if len(messages) != 1 or not (scan.scan_type and scan.diagnosis_area):
        return messages
    ack = ChatMessage(
        id=next_message_id(messages),
        role="assistant",
        content=scan_acknowledgement(scan.scan_type, scan.diagnosis_area),
    )
    return container.set_chat_messages([*messages, ack]).chat_messages


def _system_prompt(scan_info: ScanInfo | None) -> str:
    if scan_info is None or not scan_info.scan_type:
        return SYSTEM_PROMPT
    detail = f"{scan_info.scan_type} of the {scan_info.body_part_imaged or 'unspecified region'}"
    if scan_info.fractured_bone:
        detail += f" ({scan_info.fractured_bone})"
    return (
        f"{SYSTEM_PROMPT}\n\nCurrent scan: {detail}, "
        f"focusing on {scan_info.diagnosis_area or 'an unspecified area'}."
    )


def _dummy_reply(request: ChatRequest) -> str:
    if request.scan_info and request.scan_info.diagnosis_area:
        return (
            f"Thanks for the details. Based on the {request.scan_info.diagnosis_area.lower()} "
            "assessment, I'd recommend reviewing the AI findings together with the clinical history."
        )
    return "Thanks for your message. Please upload a scan so I can help with the assessment."


async def complete_chat(request: ChatRequest, llm: LLMClient) -> str:
    """Run one chat completion; falls back to a canned reply without an LLM."""
    if not llm.available():
        return _dummy_reply(request)
    messages = [m.model_dump() for m in request.messages]
    return await llm.complete(messages, system=_system_prompt(request.scan_info))


async def send_message(
    container: FormStateContainer,
    content: str,
    llm: LLMClient,
) -> tuple[list[ChatMessage], Notification | None]:
    """Append a user message, ask the assistant, append its reply.

    On completion failure the user message is kept and a notification is
    returned instead of a reply.
    """
    messages = ensure_greeting(container)
    user_message = ChatMessage(id=next_message_id(messages), role="user", content=content)
    messages = container.set_chat_messages([*messages, user_message]).chat_messages

    scan = container.get_state().current_scan
    request = ChatRequest(
        messages=[{"role": m.role, "content": m.content} for m in messages],
        scan_info=ScanInfo(
            scan_type=scan.scan_type,
            diagnosis_area=scan.diagnosis_area,
            body_part_imaged=scan.body_part_imaged,
            fractured_bone=scan.fractured_bone or None,
        ),
    )
    try:
        text = await complete_chat(request, llm)
    except Exception as e:
        logger.error("Chat completion failed: %s", e)
        return messages, Notification(
            title="Assistant unavailable",
            description="The diagnostics assistant could not respond. Please try again.",
            variant="destructive",
        )

    # Re-read: another response may have landed while this one was in flight.
    current = container.get_state().chat_messages
    reply = ChatMessage(id=next_message_id(current), role="assistant", content=text)
    return container.set_chat_messages([*current, reply]).chat_messages, None
