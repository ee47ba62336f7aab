"""Content extractor for plain-text documents.

Decodes UTF-8 bytes (a leading byte-order mark is tolerated) and treats
form feeds (``\\f``) as page breaks, the convention used by ``pdftotext``
and most line printers.  A file without form feeds is a single page.
"""

from __future__ import annotations

import structlog

from chatbot_kb.interfaces.content_extractor import IContentExtractor
from chatbot_kb.models.knowledge import ExtractedDocument, SourceType
from chatbot_kb.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)

_PAGE_BREAK = "\f"


class PlainTextContentExtractor(IContentExtractor):
    """Splits UTF-8 text into pages on form-feed characters."""

    def extract(self, data: bytes, filename: str) -> ExtractedDocument:
        if not data:
            return ExtractedDocument(pages=[], page_count=0)

        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            logger.error("text_decode_failed", filename=filename, position=exc.start)
            raise ExtractionError(
                message=f"{filename!r} is not valid UTF-8 text (byte {exc.start})",
                provider_name=self.get_provider_name(),
            ) from exc

        pages = text.split(_PAGE_BREAK)
        logger.info("text_extracted", filename=filename, pages=len(pages), size=len(data))
        return ExtractedDocument(pages=pages, page_count=len(pages))

    def supported_type(self) -> SourceType:
        return SourceType.TEXT

    def get_provider_name(self) -> str:
        return "utf8_text"
