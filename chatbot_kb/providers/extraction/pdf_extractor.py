"""Content extractor for PDF documents.

Writes the uploaded bytes to a scoped temporary file, opens it with
PyMuPDF (fitz), and returns the text of every page in document order.
Pages with no extractable text (e.g. scanned images without an OCR layer)
become empty strings so page numbering and count stay faithful to the
physical document.
"""

from __future__ import annotations

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog

from chatbot_kb.interfaces.content_extractor import IContentExtractor
from chatbot_kb.models.knowledge import ExtractedDocument, SourceType
from chatbot_kb.utils.errors import ExtractionError
from chatbot_kb.utils.temp_files import scoped_temp_file

logger = structlog.get_logger(logger_name=__name__)

_PROVIDER_NAME = "pymupdf"


class PDFContentExtractor(IContentExtractor):
    """Extracts page texts from PDF bytes using PyMuPDF.

    Parameters
    ----------
    temp_dir:
        Directory for the scoped temp file.  Empty or ``None`` uses the
        system temp dir.
    """

    def __init__(self, temp_dir: str | None = None) -> None:
        self._temp_dir = temp_dir or None

    def extract(self, data: bytes, filename: str) -> ExtractedDocument:
        if not data:
            logger.warning("pdf_empty_upload", filename=filename)
            return ExtractedDocument(pages=[], page_count=0)

        with scoped_temp_file(data, filename, self._temp_dir) as path:
            pages = self._extract_pages(str(path), filename)

        if not any(page.strip() for page in pages):
            logger.warning("pdf_no_text_extracted", filename=filename, pages=len(pages))

        logger.info("pdf_extracted", filename=filename, pages=len(pages), size=len(data))
        return ExtractedDocument(pages=pages, page_count=len(pages))

    def supported_type(self) -> SourceType:
        return SourceType.PDF

    def get_provider_name(self) -> str:
        return _PROVIDER_NAME

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_pages(file_path: str, filename: str) -> list[str]:
        """Return one text block per page, including empty pages."""
        try:
            doc = fitz.open(file_path)
        except Exception as exc:
            logger.error("pdf_open_failed", filename=filename, error=str(exc))
            raise ExtractionError(
                message=f"Could not open {filename!r} as PDF: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        try:
            if not doc.is_pdf:
                raise ExtractionError(
                    message=f"{filename!r} is not a PDF document",
                    provider_name=_PROVIDER_NAME,
                )
            return [page.get_text("text") for page in doc]
        except ExtractionError:
            raise
        except Exception as exc:
            logger.error("pdf_page_read_failed", filename=filename, error=str(exc))
            raise ExtractionError(
                message=f"Could not read pages of {filename!r}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc
        finally:
            doc.close()
