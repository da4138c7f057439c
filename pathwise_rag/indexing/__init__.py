"""Indexing module for chunk storage and similarity search."""

from .backends import JsonFileBackend, MemoryBackend, MongoBackend, StorageBackend
from .records import ChunkRecord, SearchResult
from .vector_store import BackendState, VectorStore, cosine_similarity

__all__ = [
    "BackendState",
    "ChunkRecord",
    "JsonFileBackend",
    "MemoryBackend",
    "MongoBackend",
    "SearchResult",
    "StorageBackend",
    "VectorStore",
    "cosine_similarity"
]
