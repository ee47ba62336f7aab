"""Character-window text chunking with natural-break preference.

Splits extracted page texts into overlapping spans sized for embedding
models (~1000 characters each with 200 characters of overlap).

The chunking strategy has two goals:

1. **Natural boundaries** -- A window is cut at the last paragraph break
   inside a lookback window, falling back to a line break, a sentence end,
   and finally a word break, so chunks rarely end mid-word.  Only text with
   no break at all in the lookback window is cut hard at ``chunk_size``.

2. **Overlapping windows** -- Each chunk starts at least ``overlap``
   characters before the previous chunk's end, so a sentence straddling a
   cut is fully present in at least one chunk.  The start is nudged back to
   the beginning of a word when one lies within reach.
"""

from __future__ import annotations

import structlog

logger = structlog.get_logger(logger_name=__name__)

# Natural breaks, strongest first.
_SEPARATORS: tuple[str, ...] = ("\n\n", "\n", ". ", "! ", "? ", " ")
_PAGE_JOINER = "\n\n"


class TextChunker:
    """Splits page texts into ordered, overlapping character windows.

    Parameters
    ----------
    chunk_size:
        Maximum characters per chunk (default 1000).
    overlap:
        Minimum characters shared by consecutive chunks (default 200).
        Must be smaller than *chunk_size*.
    boundary_window:
        How far back from a hard cut to look for a natural break
        (default 200).

    Raises
    ------
    ValueError
        If ``chunk_size <= 0``, ``overlap < 0``, ``overlap >= chunk_size``
        or ``boundary_window < 0``.
    """

    def __init__(
        self,
        chunk_size: int = 1000,
        overlap: int = 200,
        boundary_window: int = 200,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if overlap < 0 or overlap >= chunk_size:
            raise ValueError(
                f"overlap must be >= 0 and smaller than chunk_size ({chunk_size}), got {overlap}"
            )
        if boundary_window < 0:
            raise ValueError(f"boundary_window must be >= 0, got {boundary_window}")
        self._chunk_size = chunk_size
        self._overlap = overlap
        self._boundary_window = boundary_window

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def overlap(self) -> int:
        return self._overlap

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def split(self, pages: list[str]) -> list[str]:
        """Split *pages* into overlapping chunks, in document order.

        Parameters
        ----------
        pages:
            Page texts as returned by an extractor.  Blank pages are skipped;
            the rest are stripped and joined with a blank line.

        Returns
        -------
        list[str]
            Chunk texts.  Text no longer than ``chunk_size`` yields exactly
            one chunk; empty or whitespace-only input yields ``[]``.
        """
        text = _PAGE_JOINER.join(p.strip() for p in pages if p and p.strip())
        if not text:
            return []

        chunks = [text[start:end] for start, end in self._spans(text)]
        logger.debug(
            "chunking_complete",
            num_chunks=len(chunks),
            total_chars=len(text),
            chunk_size=self._chunk_size,
            overlap=self._overlap,
        )
        return chunks

    # ------------------------------------------------------------------
    # Window computation
    # ------------------------------------------------------------------

    def _spans(self, text: str) -> list[tuple[int, int]]:
        """Return ``(start, end)`` offsets of every chunk in *text*."""
        n = len(text)
        if n <= self._chunk_size:
            return [(0, n)]

        spans: list[tuple[int, int]] = []
        start = 0
        while True:
            hard_end = min(start + self._chunk_size, n)
            if hard_end == n:
                spans.append((start, n))
                break

            end = self._find_cut(text, start, hard_end)
            spans.append((start, end))
            start = self._next_start(text, start, end)

        return spans

    def _find_cut(self, text: str, start: int, hard_end: int) -> int:
        """Return the end offset for a window beginning at *start*.

        The cut always lies more than ``overlap`` characters after *start*,
        which keeps the next window's start moving forward.
        """
        floor = max(start + self._overlap + 1, hard_end - self._boundary_window)
        for sep in _SEPARATORS:
            idx = text.rfind(sep, floor, hard_end)
            if idx != -1:
                return idx + len(sep)
        return hard_end

    def _next_start(self, text: str, start: int, end: int) -> int:
        """Return the start of the window following ``[start, end)``."""
        candidate = end - self._overlap
        lower = max(start + 1, candidate - self._boundary_window)
        for pos in range(candidate - 1, lower - 1, -1):
            if text[pos] in " \n":
                return pos + 1
        return candidate
