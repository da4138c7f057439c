"""
Document Processor Module

Ingestion pipeline for one document: extract -> chunk -> embed -> store.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from tqdm import tqdm

from ..chunking import DocumentChunker
from ..embedding import Embedder
from ..errors import EmbeddingUnavailable
from ..indexing import VectorStore
from .extractor import Content, TextExtractor

DEFAULT_SOURCE = "document"


@dataclass
class IngestionResult:
    """Outcome of ingesting one document."""
    num_chunks: int
    document_ids: List[str] = field(default_factory=list)
    source: str = DEFAULT_SOURCE
    num_pages: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "numChunks": self.num_chunks,
            "documentIds": list(self.document_ids),
            "source": self.source,
            "numPages": self.num_pages
        }


class DocumentProcessor:
    """
    Orchestrates ingestion of source documents into a vector store.

    Chunks are embedded and stored one at a time, in order, to respect
    embedding-provider rate limits. Ingestion is not atomic: if an embedding
    or storage call fails, chunks stored before the failure remain. Callers
    that need all-or-nothing behaviour should call
    VectorStore.remove_by_source() on failure.
    """

    def __init__(
        self,
        embedder: Optional[Embedder],
        vector_store: VectorStore,
        chunker: Optional[DocumentChunker] = None,
        extractor: Optional[TextExtractor] = None,
        delay: float = 0.1,
        verbose: bool = True,
        show_progress: bool = False
    ):
        """
        Initialize the processor.

        Args:
            embedder: Embedding capability (None means not configured)
            vector_store: Store that receives the chunks
            chunker: Chunker (defaults to 1000-char windows with 200 overlap)
            extractor: Text extractor for bytes / PDF / file input
            delay: Seconds to pause between embedding calls
            verbose: Print progress messages
            show_progress: Show a progress bar while embedding chunks
        """
        self.embedder = embedder
        self.vector_store = vector_store
        self.chunker = chunker or DocumentChunker()
        self.extractor = extractor or TextExtractor()
        self.delay = delay
        self.verbose = verbose
        self.show_progress = show_progress

    def _log(self, message: str):
        """Print log message if verbose."""
        if self.verbose:
            print(message)

    async def process_document(
        self,
        content: Content,
        metadata: Optional[Mapping[str, Any]] = None,
        source: Optional[str] = None,
        chunk_size: Optional[int] = None,
        overlap: Optional[int] = None
    ) -> IngestionResult:
        """
        Ingest one document.

        Args:
            content: Text, raw bytes, or a path to a text/PDF file
            metadata: Extra key/value pairs copied onto every chunk
            source: Document identifier (defaults to metadata["source"],
                then the file name)
            chunk_size: Override for the chunker's window size
            overlap: Override for the chunker's overlap

        Returns:
            Chunk count and the ids of the stored chunks

        Raises:
            ParseError: Content could not be turned into text
            EmbeddingUnavailable: No embedder configured
            EmbeddingProviderError: An embedding call failed
            PersistenceError: A store write failed with no fallback
        """
        if self.embedder is None:
            raise EmbeddingUnavailable("No embedder configured; cannot ingest documents")

        caller_metadata = dict(metadata or {})
        extracted = self.extractor.extract(content)
        source = source or caller_metadata.get("source") or extracted.source or DEFAULT_SOURCE

        self._log(f"Processing document: {source}")

        chunks = self.chunker.chunk(extracted.text, chunk_size=chunk_size, overlap=overlap)
        self._log(f"  Split {source} into {len(chunks)} chunks")

        document_ids = []
        for i, chunk in enumerate(tqdm(chunks, desc=f"Embedding {source}", disable=not self.show_progress)):
            embedding = await self.embedder.embed(chunk)

            doc_id = await self.vector_store.add(chunk, embedding, {
                **caller_metadata,
                "chunkIndex": i,
                "totalChunks": len(chunks),
                "source": source
            })
            document_ids.append(doc_id)

            if self.delay > 0 and i < len(chunks) - 1:
                await asyncio.sleep(self.delay)

        self._log(f"  Stored {len(document_ids)} chunks from {source}")

        return IngestionResult(
            num_chunks=len(chunks),
            document_ids=document_ids,
            source=source,
            num_pages=extracted.num_pages
        )
