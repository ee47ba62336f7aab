"""Unit tests for the PDF and plain-text content extractors."""

from __future__ import annotations

from pathlib import Path

import pytest

from chatbot_kb.models.knowledge import SourceType
from chatbot_kb.providers.extraction.pdf_extractor import PDFContentExtractor
from chatbot_kb.providers.extraction.text_extractor import PlainTextContentExtractor
from chatbot_kb.utils.errors import ExtractionError
from tests.conftest import make_pdf_bytes


# ======================================================================
# PDF
# ======================================================================


class TestPDFContentExtractor:
    def test_extracts_every_page_in_order(self, ingest_temp_dir: Path) -> None:
        data = make_pdf_bytes(["First page text", "Second page text", "Third page text"])
        extractor = PDFContentExtractor(temp_dir=str(ingest_temp_dir))

        result = extractor.extract(data, "manual.pdf")

        assert result.page_count == 3
        assert len(result.pages) == 3
        assert "First page text" in result.pages[0]
        assert "Second page text" in result.pages[1]
        assert "Third page text" in result.pages[2]

    def test_blank_pages_are_kept(self, ingest_temp_dir: Path) -> None:
        data = make_pdf_bytes(["Cover", "", "Back"])
        result = PDFContentExtractor(temp_dir=str(ingest_temp_dir)).extract(data, "gaps.pdf")

        assert result.page_count == 3
        assert result.pages[1].strip() == ""

    def test_empty_bytes_yield_empty_document(self, ingest_temp_dir: Path) -> None:
        result = PDFContentExtractor(temp_dir=str(ingest_temp_dir)).extract(b"", "empty.pdf")

        assert result.pages == []
        assert result.page_count == 0
        assert list(ingest_temp_dir.iterdir()) == []

    def test_corrupt_bytes_raise_extraction_error(self, ingest_temp_dir: Path) -> None:
        extractor = PDFContentExtractor(temp_dir=str(ingest_temp_dir))

        with pytest.raises(ExtractionError) as exc_info:
            extractor.extract(b"\x00\x01 definitely not a pdf \xff" * 50, "broken.pdf")

        assert exc_info.value.provider_name == "pymupdf"

    def test_temp_file_removed_after_success(self, ingest_temp_dir: Path) -> None:
        PDFContentExtractor(temp_dir=str(ingest_temp_dir)).extract(
            make_pdf_bytes(["hello"]), "hello.pdf"
        )
        assert list(ingest_temp_dir.iterdir()) == []

    def test_temp_file_removed_after_failure(self, ingest_temp_dir: Path) -> None:
        with pytest.raises(ExtractionError):
            PDFContentExtractor(temp_dir=str(ingest_temp_dir)).extract(b"garbage" * 20, "bad.pdf")
        assert list(ingest_temp_dir.iterdir()) == []

    def test_supported_type_and_name(self) -> None:
        extractor = PDFContentExtractor()
        assert extractor.supported_type() == SourceType.PDF
        assert extractor.get_provider_name() == "pymupdf"


# ======================================================================
# Plain text
# ======================================================================


class TestPlainTextContentExtractor:
    def test_single_page(self) -> None:
        result = PlainTextContentExtractor().extract(b"Hello knowledge base", "notes.txt")
        assert result.pages == ["Hello knowledge base"]
        assert result.page_count == 1

    def test_form_feed_splits_pages(self) -> None:
        result = PlainTextContentExtractor().extract(b"one\ftwo\fthree", "paged.txt")
        assert result.pages == ["one", "two", "three"]
        assert result.page_count == 3

    def test_bom_is_stripped(self) -> None:
        data = "\ufeffCafé menu".encode("utf-8")
        result = PlainTextContentExtractor().extract(data, "menu.txt")
        assert result.pages == ["Café menu"]

    def test_empty_bytes(self) -> None:
        result = PlainTextContentExtractor().extract(b"", "empty.txt")
        assert result.page_count == 0
        assert result.pages == []

    def test_invalid_utf8_raises(self) -> None:
        with pytest.raises(ExtractionError) as exc_info:
            PlainTextContentExtractor().extract(b"ok \xff\xfe\xfa", "latin.txt")
        assert exc_info.value.provider_name == "utf8_text"

    def test_supported_type(self) -> None:
        assert PlainTextContentExtractor().supported_type() == SourceType.TEXT
