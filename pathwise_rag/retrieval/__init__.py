"""Retrieval module: semantic search and grounded answering."""

from .completion import AnthropicChatClient, CompletionProvider, OpenAIChatClient
from .query_handler import QueryResult, RetrievalQueryHandler, SourcePreview, build_prompt
from .retriever import VectorRetriever

__all__ = [
    "AnthropicChatClient",
    "CompletionProvider",
    "OpenAIChatClient",
    "QueryResult",
    "RetrievalQueryHandler",
    "SourcePreview",
    "VectorRetriever",
    "build_prompt"
]
