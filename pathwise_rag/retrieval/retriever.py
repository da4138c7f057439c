"""
Vector Retrieval Module

Provides semantic search over the vector store for free-text queries.
"""

from typing import Any, Callable, Dict, List, Optional

from ..embedding import Embedder
from ..errors import EmbeddingUnavailable
from ..indexing import SearchResult, VectorStore


class VectorRetriever:
    """
    Performs semantic search against a VectorStore.

    Retrieves most similar chunks for given queries.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        embedder: Optional[Embedder]
    ):
        """
        Initialize retriever.

        Args:
            vector_store: Store holding the chunk records
            embedder: Embedder for query text (None means not configured)
        """
        self.vector_store = vector_store
        self.embedder = embedder

    async def search(self, query: str, top_k: int = 5) -> List[SearchResult]:
        """
        Search for similar chunks given a query.

        Args:
            query: Query text
            top_k: Number of results to return

        Returns:
            Results by descending similarity

        Raises:
            EmbeddingUnavailable: No embedder configured
            EmbeddingProviderError: Query embedding failed
        """
        if self.embedder is None:
            raise EmbeddingUnavailable("No embedder configured; cannot search documents")

        query_embedding = await self.embedder.embed(query)
        return self.vector_store.search(query_embedding, top_k)

    async def search_with_filter(
        self,
        query: str,
        top_k: int = 5,
        filter_fn: Optional[Callable[[SearchResult], bool]] = None,
        max_candidates: int = 100
    ) -> List[SearchResult]:
        """
        Search with metadata filtering.

        Args:
            query: Query text
            top_k: Number of results to return (after filtering)
            filter_fn: Function that takes a SearchResult and returns bool
            max_candidates: Number of candidates to retrieve before filtering

        Returns:
            Filtered results
        """
        if filter_fn is None:
            return await self.search(query, top_k)

        # Retrieve more candidates for filtering
        candidates = await self.search(query, top_k=max(max_candidates, top_k))

        filtered = [c for c in candidates if filter_fn(c)]

        return filtered[:top_k]

    def get_stats(self) -> Dict[str, Any]:
        """Get retriever statistics."""
        stats: Dict[str, Any] = {"store_stats": self.vector_store.get_stats()}
        get_info = getattr(self.embedder, "get_info", None)
        if get_info is not None:
            stats["embedding_info"] = get_info()
        return stats
