"""Embedding module for turning text into vectors."""

from .client import Embedder, EmbeddingClient

__all__ = ["Embedder", "EmbeddingClient"]
