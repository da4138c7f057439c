"""
Retrieval Query Handler Module

Answers natural-language questions from the stored corpus: retrieve the most
similar chunks, build a grounded prompt, and hand it to a completion provider.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..errors import CompletionProviderError, EmbeddingProviderError, EmbeddingUnavailable
from ..indexing import SearchResult
from .completion import CompletionProvider
from .retriever import VectorRetriever

SYSTEM_PROMPT = "You are a helpful assistant that answers questions based on provided documents."
NO_DOCUMENTS_MESSAGE = "No relevant documents found in the knowledge base."
DOCUMENT_SEPARATOR = "\n\n---\n\n"


@dataclass
class SourcePreview:
    """Shortened view of a chunk used to answer a query."""
    text: str
    similarity: float
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "similarity": self.similarity, "metadata": dict(self.metadata)}


@dataclass
class QueryResult:
    """Answer to a query, or a plain-language failure message."""
    success: bool
    message: str
    sources: List[SourcePreview] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "sources": [s.to_dict() for s in self.sources]
        }


def format_document_label(position: int, result: SearchResult) -> str:
    source = result.metadata.get("source") or "Unknown"
    chunk_index = result.metadata.get("chunkIndex")
    if chunk_index is None:
        return f"[Document {position} - {source}]"
    return f"[Document {position} - {source}, chunk {chunk_index}]"


def build_prompt(
    results: List[SearchResult],
    query: str,
    extra_context: Optional[str] = None
) -> str:
    """
    Assemble the grounded user prompt.

    Args:
        results: Retrieved chunks, most similar first
        query: The user's question
        extra_context: Optional caller context (e.g. the user's questionnaire answers)

    Returns:
        Prompt text
    """
    parts: List[str] = [
        "You are a helpful assistant that answers questions based on the provided documents.\n"
    ]

    if extra_context and extra_context.strip():
        parts.append(f"Context about the user:\n{extra_context.strip()}\n")

    documents = DOCUMENT_SEPARATOR.join(
        f"{format_document_label(i, r)}\n{r.text}" for i, r in enumerate(results, start=1)
    )
    parts.append(f"Documents:\n{documents}\n")

    parts.append(f"Question: {query}\n")

    parts.append(
        "Answer the question using only the documents above. "
        "If the answer is not in the documents, say so. "
        "Cite which document(s) you used, e.g. [Document 1]."
    )

    return "\n".join(parts)


def make_preview(text: str, length: int) -> str:
    if len(text) <= length:
        return text
    return text[:length] + "..."


class RetrievalQueryHandler:
    """
    Grounded question answering over the vector store.

    Failures at query time never raise; they come back as a QueryResult with
    success=False and no sources.
    """

    def __init__(
        self,
        retriever: VectorRetriever,
        completion: Optional[CompletionProvider],
        preview_length: int = 200,
        min_similarity: float = 0.0,
        verbose: bool = True
    ):
        """
        Initialize the handler.

        Args:
            retriever: Retriever used to find relevant chunks
            completion: Text-completion provider (None means not configured)
            preview_length: Characters of chunk text kept in each source preview
            min_similarity: Chunks scoring at or below this are treated as irrelevant
            verbose: Print progress messages
        """
        self.retriever = retriever
        self.completion = completion
        self.preview_length = preview_length
        self.min_similarity = min_similarity
        self.verbose = verbose

    def _log(self, message: str):
        """Print log message if verbose."""
        if self.verbose:
            print(message)

    async def query(
        self,
        query_text: str,
        top_k: int = 5,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        extra_context: Optional[str] = None
    ) -> QueryResult:
        """
        Answer a question from the stored documents.

        Args:
            query_text: The user's question
            top_k: Number of chunks to retrieve
            temperature: Sampling temperature for the completion
            max_tokens: Completion length limit
            extra_context: Optional caller context added to the prompt

        Returns:
            QueryResult with the answer text and source previews
        """
        self._log(f"Searching documents for query: {query_text}")

        try:
            results = await self.retriever.search(query_text, top_k)
        except (EmbeddingUnavailable, EmbeddingProviderError) as e:
            print(f"Error searching documents: {e}")
            return QueryResult(success=False, message=f"Failed to search documents: {e}")

        results = [r for r in results if r.similarity > self.min_similarity]
        if not results:
            return QueryResult(success=False, message=NO_DOCUMENTS_MESSAGE)

        sources = [
            SourcePreview(
                text=make_preview(r.text, self.preview_length),
                similarity=r.similarity,
                metadata=dict(r.metadata)
            )
            for r in results
        ]

        try:
            if self.completion is None:
                raise CompletionProviderError("No completion provider configured")
            prompt = build_prompt(results, query_text, extra_context)
            answer = await self.completion.complete(
                SYSTEM_PROMPT,
                prompt,
                temperature=temperature,
                max_tokens=max_tokens
            )
        except CompletionProviderError as e:
            print(f"Error generating RAG response: {e}")
            return QueryResult(success=False, message=f"Failed to generate response: {e}")
        except Exception as e:
            print(f"Error generating RAG response ({type(e).__name__}): {e}")
            return QueryResult(success=False, message=f"Failed to generate response: {e}")

        return QueryResult(success=True, message=answer, sources=sources)
