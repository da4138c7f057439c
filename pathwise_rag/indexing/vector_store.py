"""
Vector Store Module

Durable storage and brute-force cosine-similarity search over chunk records,
with a primary/fallback persistence backend.
"""

import asyncio
import json
import math
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from ..errors import PersistenceError
from .backends import StorageBackend
from .records import ChunkRecord, SearchResult


class BackendState(Enum):
    """Which persistence backend the store is writing to."""
    UNCONFIGURED = "unconfigured"
    PROBING = "probing"
    PRIMARY_ACTIVE = "primary_active"
    FALLBACK_ACTIVE = "fallback_active"


class _Index(NamedTuple):
    records: Tuple[ChunkRecord, ...]
    matrix: np.ndarray  # shape (len(records), dimension)


def _empty_index() -> _Index:
    return _Index((), np.zeros((0, 0), dtype=np.float64))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity dot(a, b) / (|a| * |b|).

    Returns 0.0 when either vector has zero norm or the lengths differ.
    """
    va = np.asarray(a, dtype=np.float64).ravel()
    vb = np.asarray(b, dtype=np.float64).ravel()
    if va.shape != vb.shape or va.size == 0:
        return 0.0

    denom = float(np.linalg.norm(va)) * float(np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0

    return float(np.clip(np.dot(va, vb) / denom, -1.0, 1.0))


def similarity_scores(query: Sequence[float], matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of query against every row of matrix (zeros where undefined)."""
    scores = np.zeros(matrix.shape[0], dtype=np.float64)
    q = np.asarray(query, dtype=np.float64).ravel()
    if matrix.shape[0] == 0 or q.shape[0] != matrix.shape[1]:
        return scores

    q_norm = float(np.linalg.norm(q))
    if q_norm == 0.0:
        return scores

    denom = np.linalg.norm(matrix, axis=1) * q_norm
    np.divide(matrix @ q, denom, out=scores, where=denom > 0)
    return np.clip(scores, -1.0, 1.0)


class VectorStore:
    """
    Persistent chunk store with nearest-neighbor search.

    Backend selection runs UNCONFIGURED -> PROBING -> PRIMARY_ACTIVE or
    FALLBACK_ACTIVE when open() is called. A store that starts on the primary
    and later fails a write switches to the fallback for the rest of the
    session and never re-probes. Records written before the switch stay in
    the primary and records written after it live only in the fallback, so
    a later session may see a different subset depending on which backend it
    opens. Availability is chosen over consistency here.

    Mutations are serialized; the record tuple and the embedding matrix are
    replaced together so a concurrent search always sees them aligned.
    """

    def __init__(
        self,
        primary: Optional[StorageBackend] = None,
        fallback: Optional[StorageBackend] = None,
        verbose: bool = True
    ):
        """
        Initialize the store.

        Args:
            primary: Preferred backend (e.g. MongoDB)
            fallback: Backend used when the primary is unreachable or fails
            verbose: Print progress messages
        """
        if primary is None and fallback is None:
            raise ValueError("VectorStore needs at least one backend")

        self.primary = primary
        self.fallback = fallback
        self.verbose = verbose

        self.state = BackendState.UNCONFIGURED
        self.dimension: Optional[int] = None

        self._index = _empty_index()
        self._lock = asyncio.Lock()

    def _log(self, message: str):
        """Print log message if verbose."""
        if self.verbose:
            print(message)

    @property
    def active_backend(self) -> Optional[StorageBackend]:
        if self.state is BackendState.PRIMARY_ACTIVE:
            return self.primary
        if self.state is BackendState.FALLBACK_ACTIVE:
            return self.fallback
        return None

    @property
    def is_open(self) -> bool:
        return self.state in (BackendState.PRIMARY_ACTIVE, BackendState.FALLBACK_ACTIVE)

    async def open(self) -> BackendState:
        """
        Probe the primary backend and load existing records.

        Returns:
            The resulting backend state

        Raises:
            PersistenceError: Neither backend could be loaded
        """
        async with self._lock:
            if self.is_open:
                return self.state

            self.state = BackendState.PROBING
            records: List[ChunkRecord] = []

            try:
                if self.primary is not None:
                    try:
                        await asyncio.to_thread(self.primary.ping)
                        records = await asyncio.to_thread(self.primary.load_all)
                        self.state = BackendState.PRIMARY_ACTIVE
                        self._log(f"Vector store using primary backend ({self.primary.name})")
                    except PersistenceError as e:
                        if self.fallback is None:
                            raise
                        print(f"Warning: primary backend ({self.primary.name}) unavailable ({e}), "
                              f"using fallback ({self.fallback.name})")

                if self.state is not BackendState.PRIMARY_ACTIVE:
                    await asyncio.to_thread(self.fallback.ping)
                    records = await asyncio.to_thread(self.fallback.load_all)
                    self.state = BackendState.FALLBACK_ACTIVE
                    self._log(f"Vector store using fallback backend ({self.fallback.name})")
            except Exception:
                self.state = BackendState.UNCONFIGURED
                raise

            self._replace(self._uniform(records))
            self._log(f"Loaded {len(self._index.records)} chunks into the vector index")
            return self.state

    async def add(
        self,
        text: str,
        embedding: Sequence[float],
        metadata: Optional[Mapping[str, Any]] = None
    ) -> str:
        """
        Store one chunk.

        Args:
            text: Chunk text
            embedding: Chunk vector, same dimension as every stored vector
            metadata: Must contain "source"; "addedAt" is stamped here

        Returns:
            The new record id

        Raises:
            ValueError: Malformed text, embedding or metadata
            PersistenceError: The write failed and no fallback was available
        """
        if not isinstance(text, str):
            raise ValueError("Chunk text must be a string")

        vector = _as_vector(embedding)
        meta = normalize_metadata(metadata)
        meta["addedAt"] = datetime.now(timezone.utc).isoformat()
        record = ChunkRecord(id=str(uuid.uuid4()), text=text, embedding=vector, metadata=meta)

        await self._ensure_open()
        async with self._lock:
            if self.dimension is not None and len(vector) != self.dimension:
                raise ValueError(
                    f"Embedding dimension {len(vector)} does not match store dimension {self.dimension}"
                )

            await self._write(lambda backend: backend.insert_one(record))

            index = self._index
            row = np.asarray(vector, dtype=np.float64).reshape(1, -1)
            matrix = row if not index.records else np.vstack([index.matrix, row])
            self._index = _Index(index.records + (record,), matrix)
            self.dimension = len(vector)

        return record.id

    def search(self, query_embedding: Sequence[float], top_k: int = 5) -> List[SearchResult]:
        """
        Find the chunks most similar to a query vector.

        Args:
            query_embedding: Query vector
            top_k: Maximum number of results

        Returns:
            Results by descending similarity; ties keep insertion order
        """
        index = self._index
        if not index.records or top_k <= 0:
            return []

        scores = similarity_scores(query_embedding, index.matrix)
        order = np.argsort(-scores, kind="stable")[:top_k]

        return [SearchResult(record=index.records[i].copy(), similarity=float(scores[i])) for i in order]

    async def remove_by_source(self, source: str) -> int:
        """
        Delete every chunk whose metadata.source equals source.

        Returns:
            Number of chunks removed (0 if none matched)
        """
        await self._ensure_open()
        async with self._lock:
            await self._write(lambda backend: backend.delete_many(source))

            kept = [r for r in self._index.records if r.source != source]
            removed = len(self._index.records) - len(kept)
            self._replace(kept)

        if removed:
            self._log(f"Removed {removed} chunks from source: {source}")
        return removed

    async def clear(self) -> None:
        """Remove all records. Safe to call repeatedly."""
        await self._ensure_open()
        async with self._lock:
            await self._write(lambda backend: backend.clear())
            self._replace([])

    def get_all_documents(self) -> List[ChunkRecord]:
        """Snapshot of every record in insertion order. Callers get their own copies."""
        return [r.copy() for r in self._index.records]

    def count(self) -> int:
        return len(self._index.records)

    def sources(self) -> Dict[str, int]:
        """Chunk count per source, in first-seen order."""
        counts: Dict[str, int] = {}
        for record in self._index.records:
            counts[record.source] = counts.get(record.source, 0) + 1
        return counts

    def get_stats(self) -> Dict[str, Any]:
        """Get store statistics."""
        backend = self.active_backend
        return {
            "state": self.state.value,
            "active_backend": backend.name if backend is not None else None,
            "total_chunks": self.count(),
            "embedding_dim": self.dimension,
            "sources": self.sources()
        }

    async def close(self) -> None:
        for backend in (self.primary, self.fallback):
            if backend is not None:
                await asyncio.to_thread(backend.close)

    async def _ensure_open(self):
        if not self.is_open:
            await self.open()

    async def _write(self, op: Callable[[StorageBackend], Any]) -> Any:
        """Run a write on the active backend, degrading to the fallback once."""
        backend = self.active_backend
        try:
            return await asyncio.to_thread(op, backend)
        except PersistenceError as e:
            if self.state is not BackendState.PRIMARY_ACTIVE or self.fallback is None:
                raise
            print(f"Warning: write to primary backend ({backend.name}) failed ({e}); "
                  f"switching to fallback ({self.fallback.name}) for the rest of this session")
            self.state = BackendState.FALLBACK_ACTIVE
            return await asyncio.to_thread(op, self.fallback)

    def _replace(self, records: List[ChunkRecord]):
        if not records:
            self._index = _empty_index()
            self.dimension = None
            return

        matrix = np.asarray([r.embedding for r in records], dtype=np.float64)
        self._index = _Index(tuple(records), matrix)
        self.dimension = matrix.shape[1]

    def _uniform(self, records: List[ChunkRecord]) -> List[ChunkRecord]:
        """Drop loaded records whose dimension differs from the first one."""
        if not records:
            return []

        dimension = records[0].dimension
        kept = [r for r in records if r.dimension == dimension and dimension > 0]
        if len(kept) != len(records):
            print(f"Warning: ignoring {len(records) - len(kept)} stored chunks "
                  f"whose embedding dimension is not {dimension}")
        return kept


def _as_vector(embedding: Sequence[float]) -> Tuple[float, ...]:
    try:
        vector = tuple(float(x) for x in embedding)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Embedding must be a sequence of numbers: {e}") from e

    if not vector:
        raise ValueError("Embedding must not be empty")
    if not all(math.isfinite(x) for x in vector):
        raise ValueError("Embedding contains NaN or infinite values")
    return vector


def normalize_metadata(metadata: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Validate chunk metadata and fill positional defaults.

    None values are dropped; "source" is required; chunkIndex defaults to 0 and
    totalChunks to 1, with 0 <= chunkIndex < totalChunks. Values must be
    JSON-serializable; the result is a deep copy.
    """
    if metadata is None:
        metadata = {}
    if not isinstance(metadata, Mapping):
        raise ValueError(f"Metadata must be a mapping, got {type(metadata).__name__}")

    meta = {str(k): v for k, v in metadata.items() if v is not None}

    if "source" not in meta or meta["source"] == "":
        raise ValueError("Metadata must include a non-empty 'source'")

    meta.setdefault("chunkIndex", 0)
    meta.setdefault("totalChunks", 1)
    try:
        chunk_index = int(meta["chunkIndex"])
        total_chunks = int(meta["totalChunks"])
    except (TypeError, ValueError) as e:
        raise ValueError(f"chunkIndex/totalChunks must be integers: {e}") from e

    if not 0 <= chunk_index < total_chunks:
        raise ValueError(f"chunkIndex {chunk_index} out of range for totalChunks {total_chunks}")

    meta["chunkIndex"] = chunk_index
    meta["totalChunks"] = total_chunks

    # Round-trip through JSON so the stored copy shares nothing with the caller
    try:
        return json.loads(json.dumps(meta, allow_nan=False))
    except (TypeError, ValueError) as e:
        raise ValueError(f"Metadata must be JSON-serializable: {e}") from e
