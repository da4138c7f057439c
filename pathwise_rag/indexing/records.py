"""
Chunk Records

Fixed-shape value types for stored chunks and search hits.
"""

from copy import deepcopy
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Tuple


@dataclass(frozen=True)
class ChunkRecord:
    """A stored document chunk. Never mutated once created."""

    id: str
    text: str
    embedding: Tuple[float, ...]
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def source(self) -> Any:
        return self.metadata.get("source")

    @property
    def dimension(self) -> int:
        return len(self.embedding)

    def copy(self) -> "ChunkRecord":
        """Same record with its own deep copy of the metadata."""
        return replace(self, metadata=deepcopy(self.metadata))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "embedding": list(self.embedding),
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChunkRecord":
        """Build a record from its stored form, ignoring backend-internal keys like Mongo's _id."""
        try:
            return cls(
                id=str(data["id"]),
                text=str(data["text"]),
                embedding=tuple(float(x) for x in data["embedding"]),
                metadata=dict(data.get("metadata") or {}),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Malformed chunk record: {e}") from e


@dataclass(frozen=True)
class SearchResult:
    """A chunk record paired with its similarity to the query."""

    record: ChunkRecord
    similarity: float

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def text(self) -> str:
        return self.record.text

    @property
    def metadata(self) -> Dict[str, Any]:
        return self.record.metadata

    def to_dict(self) -> Dict[str, Any]:
        data = self.record.to_dict()
        data["similarity"] = self.similarity
        return data


def records_to_dicts(records: List[ChunkRecord]) -> List[Dict[str, Any]]:
    return [r.to_dict() for r in records]
