"""
Storage Backends Module

Persistence backends for the vector store: a JSON file, a MongoDB collection
and a process-local list.
"""

import abc
import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..errors import PersistenceError
from .records import ChunkRecord, records_to_dicts


class StorageBackend(abc.ABC):
    """Document-oriented persistence for chunk records."""

    name = "backend"

    @abc.abstractmethod
    def ping(self) -> None:
        """Raise PersistenceError if the backend is unreachable."""

    @abc.abstractmethod
    def load_all(self) -> List[ChunkRecord]:
        """Return every stored record in insertion order."""

    @abc.abstractmethod
    def insert_one(self, record: ChunkRecord) -> None:
        """Persist one record."""

    @abc.abstractmethod
    def delete_many(self, source: Optional[str] = None) -> int:
        """Delete records whose metadata.source equals source (all when None)."""

    def clear(self) -> None:
        self.delete_many(None)

    def close(self) -> None:
        """Release resources. Override if needed."""
        pass


class MemoryBackend(StorageBackend):
    """Keeps records in a list; nothing survives the process."""

    name = "memory"

    def __init__(self, records: Optional[List[ChunkRecord]] = None):
        self._records: List[ChunkRecord] = list(records or [])

    def ping(self) -> None:
        pass

    def load_all(self) -> List[ChunkRecord]:
        return list(self._records)

    def insert_one(self, record: ChunkRecord) -> None:
        self._records.append(record)

    def delete_many(self, source: Optional[str] = None) -> int:
        before = len(self._records)
        if source is None:
            self._records = []
        else:
            self._records = [r for r in self._records if r.source != source]
        return before - len(self._records)


class JsonFileBackend(StorageBackend):
    """
    Single JSON file holding every record.

    File layout::

        {"documents": [...], "embeddings": [...], "lastUpdated": "<iso timestamp>"}

    Every write rewrites the whole file.
    """

    name = "file"

    def __init__(self, path: str, verbose: bool = True):
        self.path = Path(path)
        self.verbose = verbose
        self._records: Optional[List[ChunkRecord]] = None

    def ping(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Cannot create directory for {self.path}: {e}") from e

    def load_all(self) -> List[ChunkRecord]:
        if self._records is None:
            self._records = self._read()
        return list(self._records)

    def insert_one(self, record: ChunkRecord) -> None:
        records = self.load_all()
        records.append(record)
        self._write(records)

    def delete_many(self, source: Optional[str] = None) -> int:
        records = self.load_all()
        if source is None:
            kept: List[ChunkRecord] = []
        else:
            kept = [r for r in records if r.source != source]
        removed = len(records) - len(kept)
        if removed or source is None:
            self._write(kept)
        return removed

    def _log(self, message: str):
        """Print log message if verbose."""
        if self.verbose:
            print(message)

    def _read(self) -> List[ChunkRecord]:
        if not self.path.exists():
            self._log(f"No existing vector store found at {self.path}, starting fresh")
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Failed to read vector store file {self.path}: {e}") from e

        documents = data.get("documents") or []
        embeddings = data.get("embeddings") or []

        records = []
        for idx, doc in enumerate(documents):
            # Older files kept vectors only in the parallel "embeddings" array
            if "embedding" not in doc and idx < len(embeddings):
                doc = {**doc, "embedding": embeddings[idx]}
            try:
                records.append(ChunkRecord.from_dict(doc))
            except ValueError as e:
                print(f"Warning: skipping unreadable record #{idx} in {self.path}: {e}")

        self._log(f"Loaded {len(records)} documents from {self.path}")
        return records

    def _write(self, records: List[ChunkRecord]) -> None:
        documents = records_to_dicts(records)
        data = {
            "documents": documents,
            "embeddings": [doc["embedding"] for doc in documents],
            "lastUpdated": datetime.now(timezone.utc).isoformat(),
        }

        self.ping()
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=".vector-store-", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise PersistenceError(f"Failed to write vector store file {self.path}: {e}") from e

        self._records = list(records)


class MongoBackend(StorageBackend):
    """
    MongoDB collection backend.

    Records are stored as-is; Mongo's own _id is used only for insertion order.
    """

    name = "mongo"

    def __init__(
        self,
        uri: str,
        db_name: str = "pathwise",
        collection: str = "vectorStore",
        server_selection_timeout_ms: int = 5000,
        client: Any = None
    ):
        import pymongo
        from bson.errors import BSONError
        from pymongo.errors import PyMongoError

        self._errors = (PyMongoError, BSONError)
        self._owns_client = client is None
        if client is None:
            try:
                client = pymongo.MongoClient(
                    uri,
                    maxPoolSize=10,
                    serverSelectionTimeoutMS=server_selection_timeout_ms,
                    socketTimeoutMS=45000,
                )
            except PyMongoError as e:
                raise PersistenceError(f"Invalid MongoDB configuration: {e}") from e
        self._client = client
        self._collection = client[db_name][collection]

    def ping(self) -> None:
        try:
            self._client.admin.command("ping")
        except self._errors as e:
            raise PersistenceError(f"MongoDB unreachable: {e}") from e

    def load_all(self) -> List[ChunkRecord]:
        try:
            docs = list(self._collection.find({}).sort("_id", 1))
        except self._errors as e:
            raise PersistenceError(f"Failed to load vector store from MongoDB: {e}") from e

        records = []
        for doc in docs:
            try:
                records.append(ChunkRecord.from_dict(doc))
            except ValueError as e:
                print(f"Warning: skipping unreadable MongoDB record {doc.get('_id')}: {e}")
        return records

    def insert_one(self, record: ChunkRecord) -> None:
        try:
            self._collection.insert_one(record.to_dict())
        except self._errors as e:
            raise PersistenceError(f"Failed to insert record into MongoDB: {e}") from e

    def delete_many(self, source: Optional[str] = None) -> int:
        query: Dict[str, Any] = {} if source is None else {"metadata.source": source}
        try:
            result = self._collection.delete_many(query)
        except self._errors as e:
            raise PersistenceError(f"Failed to delete records from MongoDB: {e}") from e
        return result.deleted_count

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
