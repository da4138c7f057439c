"""
Error Types

Exceptions raised by the ingestion, storage and retrieval components.
"""


class RAGError(Exception):
    """Base class for all pathwise_rag errors."""


class ParseError(RAGError):
    """Input document could not be turned into text."""


class EmbeddingUnavailable(RAGError):
    """No embedding capability is configured."""


class EmbeddingProviderError(RAGError):
    """The embedding provider call failed (rate limit, network, bad input)."""


class CompletionProviderError(RAGError):
    """The text-completion provider call failed."""


class PersistenceError(RAGError):
    """A storage backend read/write failed and no fallback was available."""
