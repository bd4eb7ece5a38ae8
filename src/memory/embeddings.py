"""Embedding providers and the resolver that picks one per model id."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

import openai

from src.config import settings
from src.llm.models import OPENAI_MODELS, Endpoint, UnknownModelError, supports_endpoint

logger = logging.getLogger(__name__)


@runtime_checkable
class VectorProvider(Protocol):
    """Protocol that all embedding providers must satisfy."""

    async def get_embedding(self, text: str, model: str) -> list[float]:
        """Embed ``text``. Raises on transport or API failure."""
        ...

    def set_api_key(self, api_key: str) -> None:
        ...


class OpenAIEmbeddingProvider:
    """OpenAI ``/embeddings`` endpoint."""

    def __init__(self, api_key: str | None = None, dimensions: int | None = None) -> None:
        self._api_key = api_key if api_key is not None else settings.openai_api_key
        self._dimensions = dimensions
        self._client: openai.AsyncOpenAI | None = None

    def set_api_key(self, api_key: str) -> None:
        self._api_key = api_key
        self._client = None

    def _get_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            self._client = openai.AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def get_embedding(self, text: str, model: str) -> list[float]:
        if not supports_endpoint(OPENAI_MODELS, model, Endpoint.EMBEDDINGS):
            msg = f"Model {model} does not support the embeddings endpoint"
            raise UnknownModelError(msg)

        kwargs: dict = {"model": model, "input": text}
        # ada-002 has a fixed size and rejects the parameter
        if self._dimensions and model != "text-embedding-ada-002":
            kwargs["dimensions"] = self._dimensions

        response = await self._get_client().embeddings.create(**kwargs)
        return list(response.data[0].embedding)


class VectorProviderResolver:
    """Pick an embedding provider by model id."""

    def __init__(self, openai_provider: VectorProvider) -> None:
        self._openai = openai_provider

    def get_provider_for_model(self, model_id: str) -> VectorProvider:
        """Return the provider for ``model_id``. Raises UnknownModelError."""
        if supports_endpoint(OPENAI_MODELS, model_id, Endpoint.EMBEDDINGS):
            return self._openai

        msg = f"No vector provider registered for model: {model_id}"
        raise UnknownModelError(msg)
