"""
Embedding API Client Module

Provides the embedder interface and an async HTTP client for getting text
embeddings from OpenAI-compatible APIs.
"""

import abc
import asyncio
import aiohttp
from typing import List, Dict, Any, Optional
from tqdm import tqdm

from ..errors import EmbeddingProviderError, EmbeddingUnavailable


class Embedder(abc.ABC):
    """Maps a piece of text to a fixed-length vector."""

    @abc.abstractmethod
    async def embed(self, text: str) -> List[float]:
        """Embed a single text."""
        ...


class EmbeddingClient(Embedder):
    """
    Client for getting embeddings from remote API.

    Supports OpenAI-compatible API format.
    """

    def __init__(
        self,
        api_url: str,
        model_name: str = "text-embedding-3-small",
        api_key: Optional[str] = None,
        batch_size: int = 32,
        max_retries: int = 3,
        timeout: int = 60,
        retry_delay: float = 1.0
    ):
        """
        Initialize embedding client.

        Args:
            api_url: API endpoint URL (e.g., "https://api.openai.com/v1/embeddings").
                An empty URL means no embedding capability is configured.
            model_name: Model name to use
            api_key: Optional API key for authentication
            batch_size: Number of texts to embed in one request
            max_retries: Maximum number of attempts per request
            timeout: Request timeout in seconds
            retry_delay: Seconds to wait between attempts
        """
        self.api_url = api_url
        self.model_name = model_name
        self.api_key = api_key
        self.batch_size = batch_size
        self.max_retries = max(1, max_retries)
        self.timeout = timeout
        self.retry_delay = retry_delay

        # Store embedding dimension (will be set after first call)
        self.embedding_dim = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_url)

    async def embed(self, text: str) -> List[float]:
        """
        Embed one text.

        Raises:
            EmbeddingUnavailable: No API URL configured
            EmbeddingProviderError: The API call failed after all retries
        """
        embeddings = await self.embed_texts([text], show_progress=False)
        return embeddings[0]

    async def embed_texts(
        self,
        texts: List[str],
        show_progress: bool = True
    ) -> List[List[float]]:
        """
        Embed multiple texts, one request per batch.

        Batches are sent one after another to stay within provider rate limits.

        Args:
            texts: List of texts to embed
            show_progress: Whether to show progress bar

        Returns:
            One vector per input text, in input order
        """
        if not self.is_configured:
            raise EmbeddingUnavailable("No embedding API configured (set EMBEDDING_API_URL or OPENAI_API_KEY)")

        if not texts:
            return []

        all_embeddings: List[List[float]] = []

        async with aiohttp.ClientSession() as session:
            for i in tqdm(
                range(0, len(texts), self.batch_size),
                desc="Embedding texts",
                disable=not show_progress
            ):
                batch = texts[i:i + self.batch_size]
                embeddings = await self._embed_batch(session, batch)
                if len(embeddings) != len(batch):
                    raise EmbeddingProviderError(
                        f"Embedding API returned {len(embeddings)} vectors for {len(batch)} inputs"
                    )
                all_embeddings.extend(embeddings)

        # Set embedding dimension
        if self.embedding_dim is None and all_embeddings:
            self.embedding_dim = len(all_embeddings[0])

        return all_embeddings

    async def _embed_batch(
        self,
        session: aiohttp.ClientSession,
        texts: List[str]
    ) -> List[List[float]]:
        """Embed a batch of texts, retrying on failure."""
        payload = {
            "input": texts,
            "model": self.model_name
        }

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        for attempt in range(self.max_retries):
            try:
                async with session.post(
                    self.api_url,
                    json=payload,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as response:
                    response.raise_for_status()
                    data = await response.json()
                    return parse_embedding_response(data)

            except Exception as e:
                if attempt == self.max_retries - 1:
                    raise EmbeddingProviderError(
                        f"Failed to get embeddings after {self.max_retries} attempts: {e}"
                    ) from e
                print(f"Retry {attempt + 1}/{self.max_retries} after error: {e}")
                await asyncio.sleep(self.retry_delay)

    def get_info(self) -> Dict[str, Any]:
        """Get client information."""
        return {
            "api_url": self.api_url,
            "model_name": self.model_name,
            "batch_size": self.batch_size,
            "embedding_dim": self.embedding_dim,
            "has_api_key": bool(self.api_key)
        }


def parse_embedding_response(data: Dict[str, Any]) -> List[List[float]]:
    """
    Pull vectors out of an OpenAI-style embeddings response.

    Items are ordered by their "index" field when present.
    """
    try:
        items = sorted(data["data"], key=lambda item: item.get("index", 0))
        return [[float(x) for x in item["embedding"]] for item in items]
    except (KeyError, TypeError, ValueError) as e:
        raise EmbeddingProviderError(f"Malformed embedding response: {e}") from e
