"""Content extractors: raw document bytes to ordered page texts."""

from chatbot_kb.providers.extraction.pdf_extractor import PDFContentExtractor
from chatbot_kb.providers.extraction.text_extractor import PlainTextContentExtractor

__all__ = ["PDFContentExtractor", "PlainTextContentExtractor"]
