"""Vector storage backends for long-term memory.

Three backends satisfy the ``VectorStorage`` protocol:

- **Qdrant**: ``qdrant-client`` against a server URL, cosine distance.
- **Supabase**: PostgREST over ``httpx`` with a ``match_memories`` RPC.
- **Local**: in-process list, for offline runs and tests.

Search results are ordered by descending similarity, capped at ``top_k``
and filtered to ``similarity >= threshold``.
"""

from __future__ import annotations

import asyncio
import logging
import math
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import httpx
from qdrant_client import AsyncQdrantClient
from qdrant_client.models import Distance, PointStruct, VectorParams

from src.config import settings
from src.memory.models import Memory, VectorStorageProvider

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from src.chat.models import AppConfig

logger = logging.getLogger(__name__)

COLLECTION_NAME = "memories"
MEMORIES_TABLE = "memories"


class UnknownStorageError(ValueError):
    """A storage selection with no bound backend."""


class EmbeddingDimensionError(ValueError):
    """An embedding whose length does not match the backend."""


@runtime_checkable
class VectorStorage(Protocol):
    """Protocol that all vector backends must satisfy."""

    def set_api_key(self, api_key: str, url: str) -> None:
        ...

    def set_url(self, url: str) -> None:
        """Point the backend at ``url``; a no-op when unchanged."""
        ...

    async def ensure_ready(self) -> None:
        """Create or verify the backing collection/table."""
        ...

    async def store_memory(self, content: str, embedding: Sequence[float]) -> None:
        ...

    async def search_similar(
        self,
        embedding: Sequence[float],
        top_k: int = 5,
        threshold: float = 0.7,
    ) -> list[Memory]:
        ...


def _check_dimensions(embedding: Sequence[float], expected: int | None) -> None:
    if expected is not None and len(embedding) != expected:
        msg = f"Embedding dimension mismatch. Expected {expected}, got {len(embedding)}"
        raise EmbeddingDimensionError(msg)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two equal-length vectors (0.0 if either is zero)."""
    dot = sum(x * y for x, y in zip(a, b, strict=True))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


# -- Qdrant ------------------------------------------------------------------


class QdrantStorage:
    """Memories as points in a Qdrant collection."""

    def __init__(
        self,
        url: str = "",
        api_key: str | None = None,
        dimensions: int | None = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._api_key = api_key if api_key is not None else settings.qdrant_api_key
        self._dimensions = dimensions or settings.vector_dimensions
        self._client: AsyncQdrantClient | None = None

    def set_api_key(self, api_key: str, url: str) -> None:
        self._api_key = api_key
        self._url = url.rstrip("/")
        self._client = None

    def set_url(self, url: str) -> None:
        url = url.rstrip("/")
        if url != self._url:
            self._url = url
            self._client = None

    def _get_client(self) -> AsyncQdrantClient:
        if self._client is None:
            self._client = AsyncQdrantClient(url=self._url, api_key=self._api_key or None)
        return self._client

    async def ensure_ready(self) -> None:
        client = self._get_client()
        if await client.collection_exists(COLLECTION_NAME):
            return
        await client.create_collection(
            collection_name=COLLECTION_NAME,
            vectors_config=VectorParams(size=self._dimensions, distance=Distance.COSINE),
        )
        logger.info(
            "Created Qdrant collection '%s' with %d-dim vectors",
            COLLECTION_NAME,
            self._dimensions,
        )

    async def store_memory(self, content: str, embedding: Sequence[float]) -> None:
        _check_dimensions(embedding, self._dimensions)
        point = PointStruct(
            id=str(uuid.uuid4()),
            vector=list(embedding),
            payload={
                "content": content,
                "created_at": datetime.now(UTC).isoformat(),
            },
        )
        await self._get_client().upsert(collection_name=COLLECTION_NAME, points=[point])

    async def search_similar(
        self,
        embedding: Sequence[float],
        top_k: int = 5,
        threshold: float = 0.7,
    ) -> list[Memory]:
        _check_dimensions(embedding, self._dimensions)
        response = await self._get_client().query_points(
            collection_name=COLLECTION_NAME,
            query=list(embedding),
            limit=top_k,
            score_threshold=threshold,
            with_payload=True,
        )
        memories = []
        for point in response.points:
            payload = point.payload or {}
            memories.append(
                Memory(
                    id=str(point.id),
                    content=payload.get("content", ""),
                    created_at=payload.get("created_at") or datetime.now(UTC),
                    similarity=point.score,
                )
            )
        return memories


# -- Supabase ----------------------------------------------------------------

SUPABASE_SETUP_SQL = """\
CREATE EXTENSION IF NOT EXISTS vector;

CREATE TABLE IF NOT EXISTS {table} (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    content TEXT NOT NULL,
    embedding vector({dimensions}),
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS {table}_embedding_idx
ON {table}
USING hnsw (embedding vector_cosine_ops);

ALTER TABLE {table} ENABLE ROW LEVEL SECURITY;"""


class SupabaseStorage:
    """Memories as rows in a pgvector table behind PostgREST."""

    def __init__(
        self,
        url: str = "",
        api_key: str | None = None,
        dimensions: int | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._api_key = api_key if api_key is not None else settings.supabase_api_key
        self._dimensions = dimensions or settings.vector_dimensions
        self._client = client
        self._table_ready = False

    def set_api_key(self, api_key: str, url: str) -> None:
        self._api_key = api_key
        self._url = url.rstrip("/")
        self._table_ready = False

    def set_url(self, url: str) -> None:
        url = url.rstrip("/")
        if url != self._url:
            self._url = url
            self._table_ready = False

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=30)
        return self._client

    @staticmethod
    def _format_vector(embedding: Sequence[float]) -> str:
        return "[" + ",".join(repr(float(v)) for v in embedding) + "]"

    async def ensure_ready(self) -> None:
        if self._table_ready:
            return
        resp = await self._get_client().get(
            f"{self._url}/rest/v1/{MEMORIES_TABLE}",
            params={"limit": 1},
            headers=self._headers(),
        )
        if resp.is_success:
            self._table_ready = True
            return
        sql = SUPABASE_SETUP_SQL.format(table=MEMORIES_TABLE, dimensions=self._dimensions)
        msg = (
            f"Table '{MEMORIES_TABLE}' does not exist. "
            f"Create it in the Supabase SQL editor:\n\n{sql}"
        )
        raise RuntimeError(msg)

    async def store_memory(self, content: str, embedding: Sequence[float]) -> None:
        _check_dimensions(embedding, self._dimensions)
        resp = await self._get_client().post(
            f"{self._url}/rest/v1/{MEMORIES_TABLE}",
            json={"content": content, "embedding": self._format_vector(embedding)},
            headers=self._headers(),
        )
        resp.raise_for_status()

    async def search_similar(
        self,
        embedding: Sequence[float],
        top_k: int = 5,
        threshold: float = 0.7,
    ) -> list[Memory]:
        _check_dimensions(embedding, self._dimensions)
        resp = await self._get_client().post(
            f"{self._url}/rest/v1/rpc/match_memories",
            json={
                "query_embedding": self._format_vector(embedding),
                "match_threshold": threshold,
                "match_count": top_k,
            },
            headers=self._headers(),
        )
        resp.raise_for_status()
        rows: list[dict[str, Any]] = resp.json() or []
        memories = [
            Memory(
                id=str(row.get("id", "")),
                content=row.get("content", ""),
                created_at=row.get("created_at") or datetime.now(UTC),
                similarity=float(row.get("similarity", 0.0)),
            )
            for row in rows
        ]
        memories.sort(key=lambda m: m.similarity, reverse=True)
        return memories


# -- Local -------------------------------------------------------------------


class LocalVectorStorage:
    """In-process store with exact cosine search. Contents die with the process."""

    def __init__(self, dimensions: int | None = None) -> None:
        self._dimensions = dimensions
        self._entries: list[tuple[Memory, list[float]]] = []
        self._lock = asyncio.Lock()

    def set_api_key(self, api_key: str, url: str) -> None:
        pass

    def set_url(self, url: str) -> None:
        pass

    async def ensure_ready(self) -> None:
        pass

    def __len__(self) -> int:
        return len(self._entries)

    async def store_memory(self, content: str, embedding: Sequence[float]) -> None:
        _check_dimensions(embedding, self._dimensions)
        memory = Memory(id=str(uuid.uuid4()), content=content)
        async with self._lock:
            self._entries.append((memory, list(embedding)))

    async def search_similar(
        self,
        embedding: Sequence[float],
        top_k: int = 5,
        threshold: float = 0.7,
    ) -> list[Memory]:
        _check_dimensions(embedding, self._dimensions)
        scored = []
        for memory, vector in self._entries:
            if len(vector) != len(embedding):
                continue
            score = cosine_similarity(embedding, vector)
            if score >= threshold:
                scored.append(memory.model_copy(update={"similarity": score}))
        scored.sort(key=lambda m: m.similarity, reverse=True)
        return scored[:top_k]


# -- Resolver ----------------------------------------------------------------


class VectorStorageResolver:
    """Total mapping from ``VectorStorageProvider`` to a backend instance."""

    def __init__(self, backends: Mapping[VectorStorageProvider, VectorStorage]) -> None:
        self._backends = dict(backends)

    def get_storage(self, provider: VectorStorageProvider) -> VectorStorage:
        """Return the backend for ``provider``. Raises UnknownStorageError."""
        storage = self._backends.get(provider)
        if storage is None:
            msg = f"Unknown vector storage provider: {provider}"
            raise UnknownStorageError(msg)
        return storage

    def storage_for(self, config: AppConfig) -> VectorStorage:
        """Return the selected backend, pointed at the URL in ``config``.

        ``config`` is re-read every turn, so a changed URL takes effect on
        the next call.
        """
        provider = config.selected_vector_storage
        storage = self.get_storage(provider)
        if provider == VectorStorageProvider.QDRANT:
            storage.set_url(config.qdrant_url)
        elif provider == VectorStorageProvider.SUPABASE:
            storage.set_url(config.supabase_url)
        return storage
