"""OpenAI embeddings client."""

from dataclasses import dataclass

from openai import AsyncOpenAI

from nutrition_assistant.services.embeddings import EmbeddingClient


@dataclass
class OpenAIEmbeddingClient(EmbeddingClient):
    client: AsyncOpenAI
    model: str

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed texts in one request, preserving input order."""
        response = await self.client.embeddings.create(model=self.model, input=texts)
        ordered = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in ordered]
