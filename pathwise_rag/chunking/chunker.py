"""
Document Chunking Module

Provides fixed-length sliding-window chunking with overlap support.
"""

import tiktoken
from typing import List, Dict, Any, Optional, Sequence, Tuple


class DocumentChunker:
    """
    Chunks document text into fixed-size, overlapping windows.

    Supports character-based (default) and token-based chunking.
    """

    def __init__(
        self,
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
        mode: str = "char",  # "char" or "token"
        encoding_name: str = "cl100k_base"  # OpenAI's encoding
    ):
        """
        Initialize the chunker.

        Args:
            chunk_size: Maximum size of each chunk
            chunk_overlap: Number of units shared by consecutive chunks
            mode: "char" for character-based, "token" for token-based
            encoding_name: Tokenizer encoding (for token mode)
        """
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.mode = mode
        self.encoding = None

        if mode == "token":
            try:
                self.encoding = tiktoken.get_encoding(encoding_name)
            except Exception as e:
                print(f"Warning: Failed to load tokenizer ({e}), falling back to char mode")
                self.mode = "char"

    def chunk(
        self,
        text: str,
        chunk_size: Optional[int] = None,
        overlap: Optional[int] = None
    ) -> List[str]:
        """
        Split text into stripped, non-empty chunks.

        Args:
            text: Text to chunk
            chunk_size: Override for the instance chunk size
            overlap: Override for the instance overlap

        Returns:
            Chunk strings in document order
        """
        return [c["text"] for c in self._chunk(text, None, chunk_size, overlap)]

    def chunk_text(self, text: str, doc_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Chunk a single text into pieces with positional metadata.

        Args:
            text: Text to chunk
            doc_id: Optional document identifier

        Returns:
            List of chunk dictionaries with metadata
        """
        return self._chunk(text, doc_id, None, None)

    def _chunk(
        self,
        text: str,
        doc_id: Optional[str],
        chunk_size: Optional[int],
        overlap: Optional[int]
    ) -> List[Dict[str, Any]]:
        if not text:
            return []

        size = self.chunk_size if chunk_size is None else chunk_size
        overlap = self.chunk_overlap if overlap is None else overlap
        if size <= 0:
            raise ValueError(f"chunk_size must be positive, got {size}")

        if self.mode == "token":
            units: Sequence = self.encoding.encode(text)
        else:
            units = text

        chunks = []
        for start, end in sliding_windows(len(units), size, overlap):
            if self.mode == "token":
                piece = self.encoding.decode(units[start:end])
            else:
                piece = units[start:end]

            piece = piece.strip()
            if not piece:
                continue

            chunk_idx = len(chunks)
            chunks.append({
                "chunk_id": f"{doc_id}_chunk_{chunk_idx}" if doc_id else f"chunk_{chunk_idx}",
                "text": piece,
                "start": start,
                "end": end,
                "size": end - start,
                "doc_id": doc_id,
                "chunk_index": chunk_idx
            })

        return chunks

    def get_stats(self, chunks: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Get statistics about chunked documents.

        Args:
            chunks: List of chunks from chunk_text()

        Returns:
            Statistics dictionary
        """
        sizes = [c["size"] for c in chunks]
        avg_size = sum(sizes) / len(sizes) if sizes else 0

        return {
            "total_chunks": len(chunks),
            "avg_chunk_size": avg_size,
            "min_chunk_size": min(sizes) if sizes else 0,
            "max_chunk_size": max(sizes) if sizes else 0,
            "chunking_mode": self.mode
        }


def sliding_windows(length: int, size: int, overlap: int) -> List[Tuple[int, int]]:
    """
    Compute [start, end) windows over a sequence of the given length.

    The start advances by size - overlap; an overlap outside [0, size) falls
    back to non-overlapping windows. Stops after the window that reaches the end.
    """
    step = size - overlap
    if overlap < 0 or step <= 0:
        step = size

    windows = []
    start = 0
    while start < length:
        end = min(start + size, length)
        windows.append((start, end))
        if end >= length:
            break
        start += step

    return windows
