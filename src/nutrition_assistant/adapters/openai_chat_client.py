"""OpenAI Responses API client for chat completions."""

from dataclasses import dataclass

from openai import AsyncOpenAI

from nutrition_assistant.services.completions import ChatClient


@dataclass
class OpenAIChatClient(ChatClient):
    """Chat client backed by OpenAI Responses API."""

    client: AsyncOpenAI
    model: str
    name: str = "openai"

    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        temperature: float,
        *,
        json_mode: bool = False,
    ) -> str:
        """Call OpenAI Responses API and return the output text."""
        request_payload: dict[str, object] = {
            "model": self.model,
            "instructions": system_prompt,
            "input": user_message,
            "temperature": temperature,
            "store": False,
        }
        if json_mode:
            request_payload["text"] = {"format": {"type": "json_object"}}

        response = await self.client.responses.create(**request_payload)
        output_text = response.output_text
        if not output_text:
            raise RuntimeError("OpenAI returned an empty response")
        return output_text
