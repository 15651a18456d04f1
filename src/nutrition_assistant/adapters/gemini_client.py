"""Gemini clients for completions and web-grounded answers."""

from dataclasses import dataclass

from google import genai
from google.genai import types

from nutrition_assistant.domain.chat import WebAnswer
from nutrition_assistant.services.completions import ChatClient, WebAnswerClient

WEB_TEMPERATURE = 0.2


@dataclass
class GeminiChatClient(ChatClient):
    """Chat client backed by the Gemini API."""

    client: genai.Client
    model: str
    name: str = "gemini"

    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        temperature: float,
        *,
        json_mode: bool = False,
    ) -> str:
        """Generate a reply for one user message."""
        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=temperature,
            response_mime_type="application/json" if json_mode else None,
        )
        response = await self.client.aio.models.generate_content(
            model=self.model, contents=user_message, config=config
        )
        if not response.text:
            raise RuntimeError("Gemini returned an empty response")
        return response.text


@dataclass
class GeminiWebAnswerClient(WebAnswerClient):
    """Gemini client answering with Google Search grounding."""

    client: genai.Client
    model: str
    name: str = "gemini-web"

    async def answer(self, prompt: str) -> WebAnswer:
        """Answer a prompt with search grounding and report the first source."""
        config = types.GenerateContentConfig(
            temperature=WEB_TEMPERATURE,
            tools=[types.Tool(google_search=types.GoogleSearch())],
        )
        response = await self.client.aio.models.generate_content(
            model=self.model, contents=prompt, config=config
        )
        url, title = _first_citation(response)
        return WebAnswer(
            text=response.text or "", citation_url=url, citation_title=title
        )


def _first_citation(
    response: types.GenerateContentResponse,
) -> tuple[str | None, str | None]:
    if not response.candidates:
        return None, None
    metadata = response.candidates[0].grounding_metadata
    if metadata is None or not metadata.grounding_chunks:
        return None, None
    web = metadata.grounding_chunks[0].web
    if web is None:
        return None, None
    return web.uri, web.title
