"""Tests for the JSON file, MongoDB and in-memory storage backends."""

import json
from types import SimpleNamespace

import pytest

from conftest import make_record

from pathwise_rag.errors import PersistenceError
from pathwise_rag.indexing import BackendState, JsonFileBackend, MemoryBackend, VectorStore
from pathwise_rag.indexing.records import ChunkRecord

META = {"source": "doc", "chunkIndex": 0, "totalChunks": 1}


class TestJsonFileBackend:
    def test_missing_file_is_empty(self, tmp_path):
        backend = JsonFileBackend(str(tmp_path / "missing.json"))
        assert backend.load_all() == []

    def test_file_layout(self, tmp_path):
        path = tmp_path / "data" / "vector-store.json"
        backend = JsonFileBackend(str(path))
        backend.insert_one(make_record("a", [1.0, 0.0]))
        backend.insert_one(make_record("b", [0.0, 1.0], source="other"))

        data = json.loads(path.read_text(encoding="utf-8"))
        assert set(data) == {"documents", "embeddings", "lastUpdated"}
        assert [d["id"] for d in data["documents"]] == ["a", "b"]
        assert data["embeddings"] == [[1.0, 0.0], [0.0, 1.0]]
        assert data["documents"][1]["metadata"]["source"] == "other"

    def test_reload_roundtrip(self, tmp_path):
        path = str(tmp_path / "vs.json")
        JsonFileBackend(path).insert_one(make_record("a", [0.5, 0.5]))
        records = JsonFileBackend(path).load_all()
        assert records == [make_record("a", [0.5, 0.5])]

    def test_delete_many_by_source(self, tmp_path):
        backend = JsonFileBackend(str(tmp_path / "vs.json"))
        backend.insert_one(make_record("a", [1.0], source="x"))
        backend.insert_one(make_record("b", [1.0], source="y"))
        backend.insert_one(make_record("c", [1.0], source="x"))

        assert backend.delete_many("x") == 2
        assert [r.id for r in JsonFileBackend(backend.path).load_all()] == ["b"]

    def test_clear(self, tmp_path):
        backend = JsonFileBackend(str(tmp_path / "vs.json"))
        backend.insert_one(make_record("a", [1.0]))
        backend.clear()
        backend.clear()
        assert JsonFileBackend(backend.path).load_all() == []

    def test_reads_vectors_from_parallel_array(self, tmp_path):
        path = tmp_path / "legacy.json"
        path.write_text(json.dumps({
            "documents": [{"id": "a", "text": "hello", "metadata": {"source": "doc"}}],
            "embeddings": [[0.1, 0.2]],
            "lastUpdated": "2024-05-01T00:00:00.000Z",
        }), encoding="utf-8")

        records = JsonFileBackend(str(path)).load_all()
        assert records[0].embedding == (0.1, 0.2)

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(PersistenceError):
            JsonFileBackend(str(path)).load_all()

    def test_unwritable_location_raises(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory", encoding="utf-8")
        backend = JsonFileBackend(str(blocker / "vs.json"))
        with pytest.raises(PersistenceError):
            backend.insert_one(make_record("a", [1.0]))

    @pytest.mark.asyncio
    async def test_store_persists_across_sessions(self, tmp_path):
        path = str(tmp_path / "vs.json")
        store = VectorStore(fallback=JsonFileBackend(path), verbose=False)
        first = await store.add("one", [1.0, 0.0], META)
        second = await store.add("two", [0.0, 1.0], META)

        reopened = VectorStore(fallback=JsonFileBackend(path), verbose=False)
        await reopened.open()
        assert [d.id for d in reopened.get_all_documents()] == [first, second]
        assert reopened.search([0.0, 1.0], 1)[0].id == second


class TestMemoryBackend:
    def test_insert_delete(self):
        backend = MemoryBackend()
        backend.insert_one(make_record("a", [1.0], source="x"))
        backend.insert_one(make_record("b", [1.0], source="y"))
        assert backend.delete_many("x") == 1
        assert [r.id for r in backend.load_all()] == ["b"]
        assert backend.delete_many(None) == 1


class TestChunkRecord:
    def test_from_dict_ignores_mongo_id(self):
        record = ChunkRecord.from_dict({
            "_id": object(),
            "id": "a",
            "text": "t",
            "embedding": [1, 2],
            "metadata": {"source": "doc"},
        })
        assert record.embedding == (1.0, 2.0)
        assert "_id" not in record.to_dict()

    def test_from_dict_rejects_missing_fields(self):
        with pytest.raises(ValueError):
            ChunkRecord.from_dict({"id": "a", "text": "t"})


# ── Fake pymongo client ──────────────────────────────────────────────────────


class FakeCursor(list):
    def sort(self, key, direction):
        return self


class FakeCollection:
    def __init__(self):
        self.docs = []
        self.fail = False

    def _check(self):
        if self.fail:
            from pymongo.errors import ServerSelectionTimeoutError
            raise ServerSelectionTimeoutError("no servers")

    def find(self, query=None, projection=None):
        self._check()
        return FakeCursor(dict(d) for d in self.docs)

    def insert_one(self, doc):
        self._check()
        doc = dict(doc)
        doc["_id"] = len(self.docs) + 1
        self.docs.append(doc)

    def delete_many(self, query):
        self._check()
        source = query.get("metadata.source")
        kept = [d for d in self.docs if query and d["metadata"].get("source") != source]
        deleted = len(self.docs) - len(kept)
        self.docs = kept
        return SimpleNamespace(deleted_count=deleted)


class FakeMongoClient:
    def __init__(self):
        self.collection = FakeCollection()
        self.admin = SimpleNamespace(command=self._command)

    def _command(self, name):
        self.collection._check()
        return {"ok": 1}

    def __getitem__(self, db_name):
        return {"vectorStore": self.collection}

    def close(self):
        pass


class TestMongoBackend:
    @pytest.fixture
    def client(self):
        pytest.importorskip("pymongo")
        return FakeMongoClient()

    def _backend(self, client):
        from pathwise_rag.indexing import MongoBackend
        return MongoBackend("mongodb://unused", client=client)

    def test_insert_load_delete(self, client):
        backend = self._backend(client)
        backend.ping()
        backend.insert_one(make_record("a", [1.0], source="x"))
        backend.insert_one(make_record("b", [1.0], source="y"))

        assert [r.id for r in backend.load_all()] == ["a", "b"]
        assert client.collection.docs[0]["metadata"]["source"] == "x"
        assert backend.delete_many("x") == 1
        assert [r.id for r in backend.load_all()] == ["b"]
        backend.clear()
        assert backend.load_all() == []

    def test_errors_become_persistence_errors(self, client):
        backend = self._backend(client)
        client.collection.fail = True
        with pytest.raises(PersistenceError):
            backend.ping()
        with pytest.raises(PersistenceError):
            backend.insert_one(make_record("a", [1.0]))

    @pytest.mark.asyncio
    async def test_store_falls_back_when_mongo_down(self, client, tmp_path):
        client.collection.fail = True
        store = VectorStore(
            primary=self._backend(client),
            fallback=JsonFileBackend(str(tmp_path / "vs.json")),
            verbose=False
        )
        assert await store.open() is BackendState.FALLBACK_ACTIVE
        await store.add("a", [1.0], META)
        assert client.collection.docs == []


class TestJsonFileBackendLogging:
    def test_quiet_backend_prints_nothing(self, tmp_path, capsys):
        path = str(tmp_path / "vs.json")
        JsonFileBackend(path, verbose=False).load_all()
        backend = JsonFileBackend(path, verbose=False)
        backend.insert_one(make_record("a", [1.0]))
        JsonFileBackend(path, verbose=False).load_all()

        assert capsys.readouterr().out == ""

    def test_verbose_backend_reports_load(self, tmp_path, capsys):
        path = str(tmp_path / "vs.json")
        JsonFileBackend(path, verbose=False).insert_one(make_record("a", [1.0]))
        JsonFileBackend(path).load_all()

        assert "Loaded 1 documents" in capsys.readouterr().out
