"""OpenAI chat-completions backend."""

from __future__ import annotations

from typing import Any, AsyncIterator

from ambient_voice.adapters.llm.base import ChatBackend
from ambient_voice.context.conversation import ConversationContext
from ambient_voice.storage.records import Role


class OpenAIChatBackend(ChatBackend):

    def __init__(
        self,
        *,
        client: Any,
        model: str,
        system_prompt: str,
        context: ConversationContext | None = None,
    ) -> None:
        """
        Args:
            client:
                openai.AsyncOpenAI instance (or compatible).
        """
        self._client = client
        self._model = model
        self._system_prompt = system_prompt
        self._context = context or ConversationContext()

    @property
    def context(self) -> ConversationContext:
        return self._context

    def append_session(self, role: Role, text: str) -> None:
        self._context.add_turn(role, text)

    def build_messages(self, text: str) -> list[dict[str, str]]:
        messages = [{"role": "system", "content": self._system_prompt}]
        messages += self._context.serialize()
        if len(messages) == 1 or messages[-1] != {"role": "user", "content": text}:
            messages.append({"role": "user", "content": text})
        return messages

    async def open_completion_stream(self, text: str) -> AsyncIterator[str]:
        stream = await self._client.chat.completions.create(
            model=self._model,
            messages=self.build_messages(text),
            stream=True,
        )
        async for chunk in stream:
            delta = self._extract_delta(chunk)
            if delta:
                yield delta

    @staticmethod
    def _extract_delta(chunk: Any) -> str:
        """Extract token delta from an OpenAI streaming chunk."""
        try:
            return chunk.choices[0].delta.content or ""
        except (AttributeError, IndexError):
            return ""
