"""Ingestion module: text extraction and the document pipeline."""

from .document_processor import DocumentProcessor, IngestionResult
from .extractor import ExtractedText, TextExtractor

__all__ = ["DocumentProcessor", "ExtractedText", "IngestionResult", "TextExtractor"]
