"""Chunking module for splitting document text into windows."""

from .chunker import DocumentChunker, sliding_windows

__all__ = ["DocumentChunker", "sliding_windows"]
