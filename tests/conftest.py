"""
Shared test fixtures and fakes.

The fakes stand in for the network-backed collaborators: an embedder that
hands out one-hot vectors, a completion provider that records its prompts,
and a primary backend that can be told to fail.
"""

from typing import Dict, List, Optional

import pytest

from pathwise_rag.embedding import Embedder
from pathwise_rag.errors import CompletionProviderError, EmbeddingProviderError, PersistenceError
from pathwise_rag.indexing import MemoryBackend, VectorStore
from pathwise_rag.indexing.records import ChunkRecord
from pathwise_rag.retrieval import CompletionProvider


class FakeEmbedder(Embedder):
    """
    Deterministic embedder: each distinct text gets its own one-hot vector.

    Texts in `vectors` get the given vector instead. With fail_at=n the n-th
    call (0-based) raises EmbeddingProviderError.
    """

    def __init__(self, dim: int = 16, vectors: Optional[Dict[str, List[float]]] = None, fail_at: Optional[int] = None):
        self.dim = dim
        self.vectors = dict(vectors or {})
        self.fail_at = fail_at
        self.calls: List[str] = []
        self._slots: Dict[str, int] = {}

    async def embed(self, text: str) -> List[float]:
        call_index = len(self.calls)
        self.calls.append(text)
        if self.fail_at is not None and call_index >= self.fail_at:
            raise EmbeddingProviderError("rate limited")

        if text in self.vectors:
            return list(self.vectors[text])

        slot = self._slots.setdefault(text, len(self._slots) % self.dim)
        vector = [0.0] * self.dim
        vector[slot] = 1.0
        return vector


class FakeCompletion(CompletionProvider):
    """Records every call and returns a canned answer (or raises)."""

    def __init__(self, answer: str = "Grounded answer [Document 1]", error: Optional[Exception] = None):
        self.answer = answer
        self.error = error
        self.calls: List[dict] = []

    async def complete(self, system_prompt, user_prompt, temperature=0.7, max_tokens=1000):
        self.calls.append({
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if self.error is not None:
            raise self.error
        return self.answer


class FlakyBackend(MemoryBackend):
    """In-memory primary backend whose ping and writes can be made to fail."""

    name = "flaky"

    def __init__(self, records=None, fail_ping: bool = False, fail_writes: bool = False):
        super().__init__(records)
        self.fail_ping = fail_ping
        self.fail_writes = fail_writes
        self.ping_count = 0

    def ping(self) -> None:
        self.ping_count += 1
        if self.fail_ping:
            raise PersistenceError("primary unreachable")

    def insert_one(self, record: ChunkRecord) -> None:
        if self.fail_writes:
            raise PersistenceError("primary write failed")
        super().insert_one(record)

    def delete_many(self, source=None) -> int:
        if self.fail_writes:
            raise PersistenceError("primary write failed")
        return super().delete_many(source)


def make_record(record_id: str, embedding: List[float], source: str = "doc", chunk_index: int = 0, total: int = 1) -> ChunkRecord:
    return ChunkRecord(
        id=record_id,
        text=f"text of {record_id}",
        embedding=tuple(embedding),
        metadata={
            "source": source,
            "chunkIndex": chunk_index,
            "totalChunks": total,
            "addedAt": "2025-01-01T00:00:00+00:00",
        },
    )


@pytest.fixture
def memory_store() -> VectorStore:
    """Unopened store over a MemoryBackend; operations open it on first use."""
    return VectorStore(fallback=MemoryBackend(), verbose=False)


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def completion() -> FakeCompletion:
    return FakeCompletion()


@pytest.fixture
def failing_completion() -> FakeCompletion:
    return FakeCompletion(error=CompletionProviderError("upstream 529 overloaded"))
