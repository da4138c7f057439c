"""
Configuration

Loads RAG settings from environment variables with sensible defaults.
"""

import os
from dataclasses import dataclass
from typing import Optional

OPENAI_EMBEDDINGS_URL = "https://api.openai.com/v1/embeddings"
OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"
ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"


def _clean_key(raw: Optional[str]) -> str:
    """Strip newlines and surrounding quotes that sneak into pasted API keys."""
    if not raw:
        return ""
    key = raw.replace("\r", "").replace("\n", "").strip()
    if len(key) >= 2 and key[0] == key[-1] and key[0] in ("'", '"'):
        key = key[1:-1]
    return key.strip()


def _optional_int(raw: Optional[str]) -> Optional[int]:
    if not raw:
        return None
    try:
        return max(1, int(raw))
    except ValueError:
        return None


@dataclass
class RAGConfig:
    """RAG subsystem configuration."""
    # Storage
    vector_store_backend: str = "auto"  # "auto", "file", "mongo", "memory"
    vector_store_path: str = "./data/vector-store.json"
    mongodb_uri: str = ""
    mongodb_db: str = "pathwise"
    mongodb_collection: str = "vectorStore"
    # Embeddings
    embedding_api_url: str = ""
    embedding_model: str = "text-embedding-3-small"
    openai_api_key: str = ""
    # Completion
    completion_provider: str = "anthropic"  # "anthropic" or "openai"
    completion_model: str = ""  # empty = provider default
    anthropic_api_key: str = ""
    max_tokens_per_message: Optional[int] = None
    # Chunking / retrieval
    chunk_size: int = 1000
    chunk_overlap: int = 200
    top_k: int = 5
    embed_delay: float = 0.1
    verbose: bool = True

    @classmethod
    def from_env(cls) -> "RAGConfig":
        openai_key = _clean_key(os.getenv("OPENAI_API_KEY"))
        # Without an explicit URL, embeddings are only available when an OpenAI key is set
        embedding_url = os.getenv("EMBEDDING_API_URL", "")
        if not embedding_url and openai_key:
            embedding_url = OPENAI_EMBEDDINGS_URL

        return cls(
            vector_store_backend=os.getenv("VECTOR_STORE_BACKEND", "auto"),
            vector_store_path=os.getenv("VECTOR_STORE_PATH", "./data/vector-store.json"),
            mongodb_uri=os.getenv("MONGODB_URI", ""),
            mongodb_db=os.getenv("MONGODB_DB", "pathwise"),
            mongodb_collection=os.getenv("VECTOR_STORE_COLLECTION", "vectorStore"),
            embedding_api_url=embedding_url,
            embedding_model=os.getenv("EMBEDDING_MODEL", "text-embedding-3-small"),
            openai_api_key=openai_key,
            completion_provider=os.getenv("COMPLETION_PROVIDER", "anthropic"),
            completion_model=os.getenv("COMPLETION_MODEL", ""),
            anthropic_api_key=_clean_key(os.getenv("ANTHROPIC_API_KEY")),
            max_tokens_per_message=_optional_int(os.getenv("MAX_TOKENS_PER_MESSAGE")),
            chunk_size=int(os.getenv("RAG_CHUNK_SIZE", "1000")),
            chunk_overlap=int(os.getenv("RAG_CHUNK_OVERLAP", "200")),
            top_k=int(os.getenv("RAG_TOP_K", "5")),
            embed_delay=float(os.getenv("RAG_EMBED_DELAY", "0.1")),
        )
