import logging

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from scandesk.config import (
    ANTHROPIC_API_KEY,
    CHAT_MAX_TOKENS,
    DUMMY_MODE,
    LLM_MODEL,
    LLM_PROVIDER,
    OPENAI_API_KEY,
)

logger = logging.getLogger(__name__)

_DEFAULT_MODELS = {
    "anthropic": "claude-3-5-sonnet-20240620",
    "openai": "gpt-4o",
}


class LLMClient:
    """Plain-text chat completion over Anthropic or OpenAI.

    ``messages`` use the OpenAI shape (``{"role", "content"}``); system
    messages are lifted into Anthropic's ``system`` parameter.
    """

    def __init__(self) -> None:
        provider = (LLM_PROVIDER or "auto").lower()
        if provider == "auto":
            if ANTHROPIC_API_KEY:
                provider = "anthropic"
            elif OPENAI_API_KEY:
                provider = "openai"
            else:
                provider = "dummy"
        if DUMMY_MODE:
            provider = "dummy"
        self.provider = provider
        self.model = LLM_MODEL or _DEFAULT_MODELS.get(provider, "")

        self._anthropic = AsyncAnthropic(api_key=ANTHROPIC_API_KEY) if ANTHROPIC_API_KEY else None
        self._openai = AsyncOpenAI(api_key=OPENAI_API_KEY) if OPENAI_API_KEY else None

    def available(self) -> bool:
        if self.provider == "anthropic":
            return self._anthropic is not None
        if self.provider == "openai":
            return self._openai is not None
        return False

    async def complete(
        self,
        messages: list[dict],
        *,
        system: str | None = None,
        max_tokens: int = CHAT_MAX_TOKENS,
    ) -> str:
        if not self.available():
            raise RuntimeError("LLM provider unavailable")

        if self.provider == "anthropic":
            system_parts = [system] if system else []
            turns = []
            for message in messages:
                if message["role"] == "system":
                    system_parts.append(message["content"])
                else:
                    turns.append({"role": message["role"], "content": message["content"]})
            kwargs = {"system": "\n\n".join(system_parts)} if system_parts else {}
            response = await self._anthropic.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                messages=turns,
                **kwargs,
            )
            text = ""
            for block in response.content:
                if hasattr(block, "text"):
                    text += block.text
            return text.strip()

        chat = [{"role": "system", "content": system}] if system else []
        chat.extend({"role": m["role"], "content": m["content"]} for m in messages)
        response = await self._openai.chat.completions.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=chat,
        )
        content = response.choices[0].message.content
        if content is None:
            raise RuntimeError("LLM returned no content")
        return content.strip()


_client: LLMClient | None = None


def get_llm_client() -> LLMClient:
    global _client
    if _client is None:
        _client = LLMClient()
    return _client
