"""Tests for text extraction and the ingestion pipeline."""

import io

import pytest

from conftest import FakeEmbedder

from pathwise_rag.errors import EmbeddingProviderError, EmbeddingUnavailable, ParseError
from pathwise_rag.ingestion import DocumentProcessor, ExtractedText, TextExtractor


def alphabet_text(length: int) -> str:
    return "".join(chr(ord("a") + (i % 26)) for i in range(length))


def blank_pdf_bytes(pages: int = 2) -> bytes:
    from PyPDF2 import PdfWriter

    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=72, height=72)
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


class TestTextExtractor:
    def test_str_passthrough(self):
        assert TextExtractor().extract("plain text").text == "plain text"

    def test_utf8_bytes(self):
        extracted = TextExtractor().extract("café".encode("utf-8"))
        assert extracted.text == "café"
        assert extracted.num_pages is None

    def test_invalid_bytes(self):
        with pytest.raises(ParseError):
            TextExtractor().extract(b"\xff\xfe\xfa")

    def test_text_file_path(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("college essay tips", encoding="utf-8")
        extracted = TextExtractor().extract(path)
        assert extracted.text == "college essay tips"
        assert extracted.source == "notes.txt"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ParseError):
            TextExtractor().extract(tmp_path / "nope.txt")

    def test_pdf_bytes(self):
        extracted = TextExtractor().extract(blank_pdf_bytes(pages=2))
        assert extracted.num_pages == 2
        assert extracted.text == ""

    def test_pdf_path(self, tmp_path):
        path = tmp_path / "guide.pdf"
        path.write_bytes(blank_pdf_bytes(pages=1))
        extracted = TextExtractor().extract(path)
        assert extracted.num_pages == 1
        assert extracted.source == "guide.pdf"

    def test_broken_pdf(self):
        with pytest.raises(ParseError):
            TextExtractor().extract(b"%PDF-1.4 this is not really a pdf")

    def test_unsupported_type(self):
        with pytest.raises(ParseError):
            TextExtractor().extract(12345)

    def test_extracted_text_passthrough(self):
        extracted = ExtractedText(text="already done", num_pages=3)
        assert TextExtractor().extract(extracted) is extracted


class TestDocumentProcessor:
    @pytest.mark.asyncio
    async def test_ingests_chunks_in_order(self, memory_store, embedder):
        processor = DocumentProcessor(embedder, memory_store, delay=0, verbose=False)

        result = await processor.process_document(
            alphabet_text(2500),
            metadata={"category": "essays", "uploadedBy": "admin"},
            source="essay-guide.pdf"
        )

        assert result.num_chunks == 3
        assert result.source == "essay-guide.pdf"
        docs = memory_store.get_all_documents()
        assert [d.id for d in docs] == result.document_ids
        assert [d.metadata["chunkIndex"] for d in docs] == [0, 1, 2]
        assert all(d.metadata["totalChunks"] == 3 for d in docs)
        assert all(d.metadata["source"] == "essay-guide.pdf" for d in docs)
        assert all(d.metadata["category"] == "essays" for d in docs)
        assert all(d.metadata["uploadedBy"] == "admin" for d in docs)
        assert embedder.calls == [d.text for d in docs]

    @pytest.mark.asyncio
    async def test_source_overrides_caller_metadata(self, memory_store, embedder):
        processor = DocumentProcessor(embedder, memory_store, delay=0, verbose=False)
        await processor.process_document("hello", metadata={"source": "old"}, source="new")
        assert memory_store.get_all_documents()[0].metadata["source"] == "new"

    @pytest.mark.asyncio
    async def test_source_from_metadata(self, memory_store, embedder):
        processor = DocumentProcessor(embedder, memory_store, delay=0, verbose=False)
        result = await processor.process_document("hello", metadata={"source": "handbook"})
        assert result.source == "handbook"

    @pytest.mark.asyncio
    async def test_source_from_file_name(self, memory_store, embedder, tmp_path):
        path = tmp_path / "faq.txt"
        path.write_text("What is a safety school?", encoding="utf-8")
        processor = DocumentProcessor(embedder, memory_store, delay=0, verbose=False)

        result = await processor.process_document(path)

        assert result.source == "faq.txt"
        assert memory_store.get_all_documents()[0].text == "What is a safety school?"

    @pytest.mark.asyncio
    async def test_default_source(self, memory_store, embedder):
        processor = DocumentProcessor(embedder, memory_store, delay=0, verbose=False)
        result = await processor.process_document("hello")
        assert result.source == "document"

    @pytest.mark.asyncio
    async def test_chunk_overrides(self, memory_store, embedder):
        processor = DocumentProcessor(embedder, memory_store, delay=0, verbose=False)
        result = await processor.process_document(alphabet_text(100), chunk_size=40, overlap=10)
        assert result.num_chunks == 3

    @pytest.mark.asyncio
    async def test_empty_document(self, memory_store, embedder):
        processor = DocumentProcessor(embedder, memory_store, delay=0, verbose=False)
        result = await processor.process_document("   ")
        assert result.num_chunks == 0
        assert result.document_ids == []
        assert embedder.calls == []

    @pytest.mark.asyncio
    async def test_embedding_failure_keeps_partial_ingestion(self, memory_store):
        embedder = FakeEmbedder(fail_at=1)
        processor = DocumentProcessor(embedder, memory_store, delay=0, verbose=False)

        with pytest.raises(EmbeddingProviderError):
            await processor.process_document(alphabet_text(2500), source="partial")

        docs = memory_store.get_all_documents()
        assert len(docs) == 1
        assert docs[0].metadata["chunkIndex"] == 0
        assert await memory_store.remove_by_source("partial") == 1

    @pytest.mark.asyncio
    async def test_no_embedder(self, memory_store):
        processor = DocumentProcessor(None, memory_store, delay=0, verbose=False)
        with pytest.raises(EmbeddingUnavailable):
            await processor.process_document("hello")

    @pytest.mark.asyncio
    async def test_parse_error_propagates(self, memory_store, embedder):
        processor = DocumentProcessor(embedder, memory_store, delay=0, verbose=False)
        with pytest.raises(ParseError):
            await processor.process_document(b"\xff\xfe\xfa")
        assert memory_store.count() == 0

    @pytest.mark.asyncio
    async def test_pdf_page_count_reported(self, memory_store, embedder):
        processor = DocumentProcessor(embedder, memory_store, delay=0, verbose=False)
        result = await processor.process_document(blank_pdf_bytes(pages=3), source="scan.pdf")
        assert result.num_pages == 3
        assert result.to_dict()["numPages"] == 3
