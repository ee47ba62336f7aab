"""Abstract base class for document content extractors.

Defines the contract for turning raw uploaded bytes into ordered page
texts.  Implementations may wrap PyMuPDF, pdfplumber, a plain UTF-8
decoder, or an HTML scraper.  The ingestion service picks the extractor
registered for an upload's declared :class:`~chatbot_kb.models.knowledge.SourceType`,
so adding a format means adding a class, not editing the orchestrator.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from chatbot_kb.models.knowledge import ExtractedDocument, SourceType


# Concrete implementations: PDFContentExtractor, PlainTextContentExtractor
# Located in: chatbot_kb/providers/extraction/
class IContentExtractor(ABC):
    """Contract for extractors that read page-level text out of a document."""

    @abstractmethod
    def extract(self, data: bytes, filename: str) -> ExtractedDocument:
        """Parse *data* and return its text, one block per physical page.

        This call may block (file I/O, parsing); the ingestion service runs
        it in a worker thread.

        Parameters
        ----------
        data:
            Raw document bytes.
        filename:
            Original upload name, used for temp-file naming and logs only.

        Returns
        -------
        ExtractedDocument
            Page texts in document order plus the page count.  Empty input
            yields an empty document rather than an error.

        Raises
        ------
        chatbot_kb.utils.errors.ExtractionError
            If *data* cannot be parsed as :meth:`supported_type`.
        """

    @abstractmethod
    def supported_type(self) -> SourceType:
        """Return the source type this extractor understands."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"pymupdf"``."""
