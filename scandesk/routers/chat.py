import logging

from fastapi import APIRouter, Depends, HTTPException

from scandesk.models.form import ChatMessage
from scandesk.models.services import ChatRequest, ChatResponse, SendMessageRequest, SendMessageResponse
from scandesk.services.chat import complete_chat, ensure_greeting, send_message
from scandesk.services.llm import LLMClient, get_llm_client
from scandesk.services.sessions import BrowserSession, get_browser_session

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


@router.post("/api/chat", response_model=ChatResponse)
async def chat(body: ChatRequest, llm: LLMClient = Depends(get_llm_client)):
    """Single-shot chat completion: ``{messages, scanInfo?}`` -> ``{text}``."""
    try:
        text = await complete_chat(body, llm)
    except Exception as e:
        logger.error("Chat API error: %s", e)
        raise HTTPException(status_code=502, detail="Failed to generate response")
    return ChatResponse(text=text)


@router.get("/api/state/chat", response_model=list[ChatMessage])
async def get_transcript(session: BrowserSession = Depends(get_browser_session)):
    """Chat transcript, seeded with the assistant greeting when empty."""
    return ensure_greeting(session.container)


@router.post("/api/state/chat/send", response_model=SendMessageResponse)
async def send(
    body: SendMessageRequest,
    session: BrowserSession = Depends(get_browser_session),
    llm: LLMClient = Depends(get_llm_client),
):
    content = body.content.strip()
    if not content:
        raise HTTPException(status_code=422, detail="Message is empty")
    messages, notification = await send_message(session.container, content, llm)
    if notification is not None:
        session.notify(notification.title, notification.description, notification.variant)
    return SendMessageResponse(chat_messages=messages, notification=notification)
