"""
Pathwise RAG

Document retrieval-augmented generation for the Pathwise counselor: chunking,
embedding, vector storage with a primary/fallback backend, and grounded
question answering.
"""

from .rag_system import RAGSystem
from .chunking import DocumentChunker
from .config import RAGConfig
from .embedding import Embedder, EmbeddingClient
from .errors import (
    CompletionProviderError,
    EmbeddingProviderError,
    EmbeddingUnavailable,
    ParseError,
    PersistenceError,
    RAGError,
)
from .indexing import BackendState, ChunkRecord, SearchResult, VectorStore, cosine_similarity
from .ingestion import DocumentProcessor
from .retrieval import CompletionProvider, QueryResult, RetrievalQueryHandler, VectorRetriever, build_prompt

__version__ = "0.1.0"

__all__ = [
    "RAGSystem",
    "RAGConfig",
    "DocumentChunker",
    "Embedder",
    "EmbeddingClient",
    "VectorStore",
    "BackendState",
    "ChunkRecord",
    "SearchResult",
    "cosine_similarity",
    "DocumentProcessor",
    "VectorRetriever",
    "RetrievalQueryHandler",
    "CompletionProvider",
    "QueryResult",
    "build_prompt",
    "RAGError",
    "ParseError",
    "EmbeddingUnavailable",
    "EmbeddingProviderError",
    "CompletionProviderError",
    "PersistenceError"
]
