"""
Pathwise RAG System - Main Module

Provides high-level interface integrating all components.
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple

from .chunking import DocumentChunker
from .config import RAGConfig
from .embedding import Embedder, EmbeddingClient
from .errors import PersistenceError
from .indexing import (
    BackendState,
    JsonFileBackend,
    MemoryBackend,
    MongoBackend,
    SearchResult,
    StorageBackend,
    VectorStore,
)
from .ingestion import DocumentProcessor, IngestionResult
from .ingestion.extractor import Content
from .retrieval import (
    AnthropicChatClient,
    CompletionProvider,
    OpenAIChatClient,
    QueryResult,
    RetrievalQueryHandler,
    VectorRetriever,
)


class RAGSystem:
    """
    Complete RAG system integrating chunking, embedding, storage, and retrieval.

    One explicitly constructed VectorStore is shared by the ingestion and
    query sides.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        embedder: Optional[Embedder] = None,
        completion: Optional[CompletionProvider] = None,
        # Chunking config
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
        chunk_mode: str = "char",  # "char" or "token"
        # Retrieval config
        top_k: int = 5,
        min_similarity: float = 0.0,
        # Other
        embed_delay: float = 0.1,
        verbose: bool = True
    ):
        """
        Initialize RAG system.

        Args:
            vector_store: Store shared by ingestion and retrieval
            embedder: Embedding capability (None disables ingestion and search)
            completion: Completion provider (None makes queries fail gracefully)
            chunk_size: Size of text chunks
            chunk_overlap: Overlap between chunks
            chunk_mode: "char" or "token" based chunking
            top_k: Default number of chunks retrieved per query
            min_similarity: Chunks at or below this score are ignored by queries
            embed_delay: Seconds between embedding calls during ingestion
            verbose: Print progress messages
        """
        self.verbose = verbose
        self.top_k = top_k

        self._log("🔧 Initializing document chunker...")
        self.chunker = DocumentChunker(
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            mode=chunk_mode
        )

        self.vector_store = vector_store
        self.embedder = embedder
        self.completion = completion

        self._log("🔧 Initializing document processor and retriever...")
        self.processor = DocumentProcessor(
            embedder,
            vector_store,
            chunker=self.chunker,
            delay=embed_delay,
            verbose=verbose
        )
        self.retriever = VectorRetriever(vector_store, embedder)
        self.query_handler = RetrievalQueryHandler(
            self.retriever,
            completion,
            min_similarity=min_similarity,
            verbose=verbose
        )

        self._log("✅ RAG system initialized")

    def _log(self, message: str):
        """Print log message if verbose."""
        if self.verbose:
            print(message)

    @classmethod
    def from_config(cls, config: RAGConfig) -> "RAGSystem":
        """
        Build a RAG system from configuration.

        Args:
            config: Settings, usually RAGConfig.from_env()

        Returns:
            Unstarted RAGSystem (call start() before use)
        """
        primary, fallback = build_backends(config)
        vector_store = VectorStore(primary=primary, fallback=fallback, verbose=config.verbose)

        embedder = None
        if config.embedding_api_url:
            embedder = EmbeddingClient(
                api_url=config.embedding_api_url,
                model_name=config.embedding_model,
                api_key=config.openai_api_key or None
            )
        else:
            print("Warning: no embedding API configured - document upload and search are disabled")

        return cls(
            vector_store,
            embedder=embedder,
            completion=build_completion_provider(config),
            chunk_size=config.chunk_size,
            chunk_overlap=config.chunk_overlap,
            top_k=config.top_k,
            embed_delay=config.embed_delay,
            verbose=config.verbose
        )

    async def start(self) -> BackendState:
        """Open the vector store (probe backends, load existing chunks)."""
        state = await self.vector_store.open()
        self._log(f"✅ Vector store ready ({state.value}, {self.vector_store.count()} chunks)")
        return state

    async def ingest(
        self,
        content: Content,
        metadata: Optional[Mapping[str, Any]] = None,
        source: Optional[str] = None
    ) -> IngestionResult:
        """
        Ingest one document: extract, chunk, embed, store.

        Errors propagate to the caller.
        """
        self._log("📚 Starting document ingestion...")
        result = await self.processor.process_document(content, metadata=metadata, source=source)
        self._log(f"✅ Ingested {result.num_chunks} chunks from {result.source}")
        return result

    async def query(
        self,
        query_text: str,
        top_k: Optional[int] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        extra_context: Optional[str] = None
    ) -> QueryResult:
        """Answer a question from the stored documents. Never raises for provider failures."""
        return await self.query_handler.query(
            query_text,
            top_k=self.top_k if top_k is None else top_k,
            temperature=temperature,
            max_tokens=max_tokens,
            extra_context=extra_context
        )

    async def search(self, query_text: str, top_k: Optional[int] = None) -> List[SearchResult]:
        """Retrieve the chunks most similar to a query, without generation."""
        return await self.retriever.search(query_text, self.top_k if top_k is None else top_k)

    async def remove_source(self, source: str) -> int:
        return await self.vector_store.remove_by_source(source)

    async def clear(self) -> None:
        await self.vector_store.clear()

    async def close(self) -> None:
        await self.vector_store.close()

    def get_stats(self) -> Dict[str, Any]:
        """Get system statistics."""
        stats = {
            "chunker_config": {
                "chunk_size": self.chunker.chunk_size,
                "chunk_overlap": self.chunker.chunk_overlap,
                "mode": self.chunker.mode
            },
            "store_stats": self.vector_store.get_stats(),
            "has_embedder": self.embedder is not None,
            "has_completion": self.completion is not None
        }

        get_info = getattr(self.embedder, "get_info", None)
        if get_info is not None:
            stats["embedding_info"] = get_info()

        return stats


def build_backends(config: RAGConfig) -> Tuple[Optional[StorageBackend], Optional[StorageBackend]]:
    """
    Pick (primary, fallback) storage backends for the configured mode.

    "auto" uses MongoDB as primary when MONGODB_URI is set, with the JSON file
    as fallback; "mongo" uses MongoDB alone; "file" and "memory" have no primary.
    """
    mode = config.vector_store_backend

    if mode == "memory":
        return None, MemoryBackend()
    if mode == "file":
        return None, JsonFileBackend(config.vector_store_path, verbose=config.verbose)
    if mode == "mongo":
        if not config.mongodb_uri:
            raise PersistenceError("VECTOR_STORE_BACKEND=mongo requires MONGODB_URI")
        return build_mongo_backend(config), None
    if mode != "auto":
        raise ValueError(f"Unknown vector store backend: {mode!r}. Supported: 'auto', 'file', 'mongo', 'memory'")

    fallback = JsonFileBackend(config.vector_store_path, verbose=config.verbose)
    if not config.mongodb_uri:
        if config.verbose:
            print("MONGODB_URI not set - using JSON file storage for the vector store")
        return None, fallback

    try:
        return build_mongo_backend(config), fallback
    except PersistenceError as e:
        print(f"Warning: {e} - using JSON file storage for the vector store")
        return None, fallback


def build_mongo_backend(config: RAGConfig) -> MongoBackend:
    try:
        return MongoBackend(
            config.mongodb_uri,
            db_name=config.mongodb_db,
            collection=config.mongodb_collection
        )
    except ImportError as e:
        raise PersistenceError(f"pymongo is not installed ({e}); install pathwise-rag[mongo]") from e


def build_completion_provider(config: RAGConfig) -> Optional[CompletionProvider]:
    """Create the configured completion provider, or None when its API key is missing."""
    provider = config.completion_provider.lower()

    if provider == "openai":
        if not config.openai_api_key:
            print("Warning: OPENAI_API_KEY not set - RAG answers are disabled")
            return None
        kwargs: Dict[str, Any] = {"max_tokens_cap": config.max_tokens_per_message}
        if config.completion_model:
            kwargs["model_name"] = config.completion_model
        return OpenAIChatClient(config.openai_api_key, **kwargs)

    if provider == "anthropic":
        if not config.anthropic_api_key:
            print("Warning: ANTHROPIC_API_KEY not set - RAG answers are disabled")
            return None
        kwargs = {"max_tokens_cap": config.max_tokens_per_message}
        if config.completion_model:
            kwargs["model_name"] = config.completion_model
        return AnthropicChatClient(config.anthropic_api_key, **kwargs)

    raise ValueError(f"Unknown completion provider: {provider!r}. Supported: 'anthropic', 'openai'")
