"""Shared pytest fixtures for the knowledge-base test suite."""

from __future__ import annotations

import asyncio
import hashlib
from pathlib import Path

import fitz
import pytest
import pytest_asyncio

from chatbot_kb.interfaces.content_extractor import IContentExtractor
from chatbot_kb.interfaces.embedding_provider import IEmbeddingProvider
from chatbot_kb.models.knowledge import ChunkInput, ExtractedDocument, SourceType
from chatbot_kb.providers.store.sqlite_knowledge_store import SQLiteKnowledgeStore
from chatbot_kb.services.ingestion.chunker import TextChunker
from chatbot_kb.services.ingestion.embedding_generator import EmbeddingGenerator
from chatbot_kb.services.ingestion.ingestion_service import IngestionService
from chatbot_kb.utils.errors import EmbeddingServiceError, ExtractionError, RateLimitError, StorageError

_EMBEDDING_DIM = 64


# ---------------------------------------------------------------------------
# Sample documents
# ---------------------------------------------------------------------------


def sentence_page(sentences: int = 14) -> str:
    """A page of identical 119-character sentences separated by single spaces.

    14 sentences give a 1679-character page; two such pages joined by a
    blank line are 3360 characters.
    """
    return " ".join(["A" * 118 + "."] * sentences)


def make_pdf_bytes(pages: list[str]) -> bytes:
    """Build a real PDF in memory with one short text line per page."""
    doc = fitz.open()
    try:
        for text in pages:
            page = doc.new_page()
            if text:
                page.insert_text((72, 72), text)
        return doc.tobytes()
    finally:
        doc.close()


# ---------------------------------------------------------------------------
# Embedding fakes
# ---------------------------------------------------------------------------


def _hash_to_vector(text: str, dim: int = _EMBEDDING_DIM) -> list[float]:
    """Generate a deterministic fixed-length vector by hashing *text*.

    Each digest byte maps to a float in ``[-1, 1]``.  Same text always
    produces the same vector.
    """
    raw = hashlib.sha256(text.encode("utf-8")).digest()
    while len(raw) < dim:
        raw += hashlib.sha256(raw).digest()
    return [b / 127.5 - 1.0 for b in raw[:dim]]


class MockEmbeddingProvider(IEmbeddingProvider):
    """In-memory deterministic embedding provider for tests.

    Every call's input batch is recorded in ``calls``.
    """

    def __init__(self, dimension: int = _EMBEDDING_DIM) -> None:
        self._dimension = dimension
        self.calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [_hash_to_vector(t, self._dimension) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        return (await self.embed([text]))[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "mock-embedding"

    def is_available(self) -> bool:
        return True


class RateLimitedEmbeddingProvider(MockEmbeddingProvider):
    """Signals throttling for the first *failures* calls, then recovers."""

    def __init__(self, failures: int) -> None:
        super().__init__()
        self._failures = failures
        self.attempts = 0

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.attempts += 1
        if self.attempts <= self._failures:
            raise RateLimitError(provider_name=self.get_provider_name())
        return await super().embed(texts)


class FailingEmbeddingProvider(MockEmbeddingProvider):
    """Always fails with a non-retryable service error."""

    def __init__(self) -> None:
        super().__init__()
        self.attempts = 0

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.attempts += 1
        raise EmbeddingServiceError(message="service unavailable", provider_name="mock-embedding")


class BlockingEmbeddingProvider(MockEmbeddingProvider):
    """Blocks inside ``embed`` until cancelled; ``started`` is set on entry."""

    def __init__(self) -> None:
        super().__init__()
        self.started = asyncio.Event()

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.started.set()
        await asyncio.Event().wait()
        return []  # pragma: no cover


# ---------------------------------------------------------------------------
# Extraction fakes
# ---------------------------------------------------------------------------


class FakeContentExtractor(IContentExtractor):
    """Returns fixed pages (or raises) regardless of the input bytes."""

    def __init__(
        self,
        pages: list[str] | None = None,
        source_type: SourceType = SourceType.PDF,
        error: Exception | None = None,
    ) -> None:
        self._pages = pages or []
        self._source_type = source_type
        self._error = error
        self.calls = 0

    def extract(self, data: bytes, filename: str) -> ExtractedDocument:
        self.calls += 1
        if self._error is not None:
            raise self._error
        return ExtractedDocument(pages=list(self._pages), page_count=len(self._pages))

    def supported_type(self) -> SourceType:
        return self._source_type

    def get_provider_name(self) -> str:
        return "fake-extractor"


def corrupt_extractor() -> FakeContentExtractor:
    return FakeContentExtractor(error=ExtractionError(message="broken", provider_name="fake"))


# ---------------------------------------------------------------------------
# Store fakes (real SQLite with one failing write)
# ---------------------------------------------------------------------------


class ChunkWriteFailingStore(SQLiteKnowledgeStore):
    """Commits sources normally but fails every ``record_chunks`` call."""

    async def record_chunks(
        self,
        chatbot_id: str,
        source_id: str,
        chunks: list[ChunkInput],
    ) -> None:
        raise StorageError(message="disk full", provider_name=self.get_provider_name())


class SourceWriteFailingStore(SQLiteKnowledgeStore):
    """Fails every ``record_source`` call."""

    async def record_source(self, chatbot_id, source_type, filename, metadata, source_id=None) -> str:  # noqa: ANN001
        raise StorageError(message="connection refused", provider_name=self.get_provider_name())


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def build_service(
    store: SQLiteKnowledgeStore,
    provider: IEmbeddingProvider | None = None,
    extractors: list[IContentExtractor] | None = None,
    *,
    max_attempts: int = 4,
    backoff_base: float = 0.0,
    backoff_max: float = 0.0,
    storage_timeout: float = 5.0,
) -> IngestionService:
    """Construct an IngestionService wired to test collaborators."""
    return IngestionService(
        extractors=extractors if extractors is not None else [FakeContentExtractor()],
        chunker=TextChunker(chunk_size=1000, overlap=200, boundary_window=200),
        embedding_generator=EmbeddingGenerator(
            provider=provider or MockEmbeddingProvider(),
            batch_size=16,
            timeout_seconds=5.0,
            max_attempts=max_attempts,
            backoff_base=backoff_base,
            backoff_max=backoff_max,
        ),
        knowledge_store=store,
        storage_timeout_seconds=storage_timeout,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_embedding_provider() -> MockEmbeddingProvider:
    """Mock IEmbeddingProvider returning deterministic hash-based vectors."""
    return MockEmbeddingProvider()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "kb" / "knowledge.db"


@pytest_asyncio.fixture
async def knowledge_store(db_path: Path) -> SQLiteKnowledgeStore:
    """An initialized SQLite knowledge store in a temp directory."""
    store = SQLiteKnowledgeStore(db_path=db_path)
    await store.initialize()
    return store


@pytest.fixture
def ingest_temp_dir(tmp_path: Path) -> Path:
    """Dedicated temp directory so tests can assert it is left empty."""
    path = tmp_path / "ingest-tmp"
    path.mkdir()
    return path


@pytest.fixture
def two_page_text() -> list[str]:
    """Two 1679-character pages (3360 characters once joined)."""
    return [sentence_page(), sentence_page()]
