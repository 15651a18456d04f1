"""Completion provider interfaces shared by the chat and nutrition services."""

from typing import Protocol

from nutrition_assistant.domain.chat import WebAnswer


class ChatClient(Protocol):
    """Interface for chat completion providers."""

    name: str

    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        temperature: float,
        *,
        json_mode: bool = False,
    ) -> str:
        """Return the model's text reply."""


class WebAnswerClient(Protocol):
    """Interface for web-grounded answer providers."""

    name: str

    async def answer(self, prompt: str) -> WebAnswer:
        """Return a grounded answer with an optional citation."""
