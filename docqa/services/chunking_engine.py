"""Chunking engine with recursive separator-based splitting."""
import logging
from collections import deque
from typing import Deque, List, Sequence, Tuple

from docqa.errors import InvalidConfiguration
from docqa.models.chunk import Chunk
from docqa.models.document import Document

logger = logging.getLogger(__name__)

Span = Tuple[int, int]

# Separators for recursive splitting (in priority order)
DEFAULT_SEPARATORS = ("\n\n", "\n", ". ", " ", "")


class ChunkingEngine:
    """Segments documents into overlapping, retrievable chunks."""

    def __init__(
        self,
        chunk_size: int = 400,
        chunk_overlap: int = 50,
        separators: Sequence[str] = DEFAULT_SEPARATORS
    ):
        """
        Initialize ChunkingEngine.

        Args:
            chunk_size: Maximum chunk size in characters
            chunk_overlap: Target overlap between adjacent chunks in characters
            separators: Split points from coarsest to finest; must end with ""

        Raises:
            InvalidConfiguration: If overlap is not strictly between 0 and chunk_size,
                or the separators do not end with the character-level fallback
        """
        if not 0 < chunk_overlap < chunk_size:
            raise InvalidConfiguration(
                f"Chunk overlap must satisfy 0 < overlap < size "
                f"(size={chunk_size}, overlap={chunk_overlap})"
            )
        if not separators or separators[-1] != "":
            raise InvalidConfiguration("Separators must end with the empty-string fallback")

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.separators = tuple(separators)

    def chunk_document(self, document: Document) -> List[Chunk]:
        """
        Chunk a document into Chunk objects with deterministic ids.

        Args:
            document: Loaded document

        Returns:
            List of chunks in document order
        """
        logger.info(f"Chunking document: {document.source}")

        chunks = []
        for start, end in self.split_spans(document.text):
            raw = document.text[start:end]
            stripped = raw.strip()
            if not stripped:
                continue

            chunk_start = start + (len(raw) - len(raw.lstrip()))
            index = len(chunks)
            chunks.append(Chunk(
                chunk_id=f"chunk_{index}",
                text=stripped,
                source=document.source,
                chunk_index=index,
                start_offset=chunk_start,
                end_offset=chunk_start + len(stripped)
            ))

        logger.info(f"Created {len(chunks)} chunks from {document.source}")
        return chunks

    def split_text(self, text: str) -> List[str]:
        """
        Split text into chunks of at most chunk_size characters.

        Args:
            text: Text to split

        Returns:
            Chunk texts in document order, stripped, with blank chunks removed
        """
        chunks = []
        for start, end in self.split_spans(text):
            stripped = text[start:end].strip()
            if stripped:
                chunks.append(stripped)
        return chunks

    def split_spans(self, text: str) -> List[Span]:
        """
        Compute the raw (start, end) character spans of each chunk.

        Consecutive spans never leave a gap: each one starts at or before
        the end of the previous span.

        Args:
            text: Text to split

        Returns:
            List of (start, end) offsets into text
        """
        if not text:
            return []

        if len(text) <= self.chunk_size:
            return [(0, len(text))]

        return self._recursive_split(text, 0, len(text), self.separators)

    def _recursive_split(
        self,
        text: str,
        start: int,
        end: int,
        separators: Sequence[str]
    ) -> List[Span]:
        """
        Recursively split text[start:end] using separators.

        Args:
            text: Full text being split
            start: Start offset of the region
            end: End offset of the region
            separators: Remaining separators, coarsest first

        Returns:
            List of spans covering the region
        """
        # Use the coarsest separator present in this region
        separator = ""
        finer: Sequence[str] = ()
        for i, candidate in enumerate(separators):
            if candidate == "" or text.find(candidate, start, end) != -1:
                separator = candidate
                finer = separators[i + 1:]
                break

        spans: List[Span] = []
        pending: List[Span] = []

        for piece in self._split_on(text, start, end, separator):
            if piece[1] - piece[0] <= self.chunk_size:
                pending.append(piece)
                continue

            # Oversized piece: flush what we have, then split it more finely
            if pending:
                spans.extend(self._merge_pieces(pending))
                pending = []

            if finer:
                spans.extend(self._recursive_split(text, piece[0], piece[1], finer))
            else:
                spans.append(piece)

        if pending:
            spans.extend(self._merge_pieces(pending))

        return spans

    @staticmethod
    def _split_on(text: str, start: int, end: int, separator: str) -> List[Span]:
        """Cut a region into pieces, keeping each separator on the piece it ends."""
        if not separator:
            return [(i, i + 1) for i in range(start, end)]

        pieces = []
        position = start
        while position < end:
            found = text.find(separator, position, end)
            if found == -1:
                pieces.append((position, end))
                break
            stop = found + len(separator)
            pieces.append((position, stop))
            position = stop
        return pieces

    def _merge_pieces(self, pieces: List[Span]) -> List[Span]:
        """
        Greedily merge contiguous pieces into chunks with overlap.

        When a chunk is emitted, the trailing pieces totalling at most
        chunk_overlap characters are carried into the next chunk.

        Args:
            pieces: Contiguous spans, each no longer than chunk_size

        Returns:
            Merged spans
        """
        merged: List[Span] = []
        window: Deque[Span] = deque()
        total = 0

        for piece in pieces:
            length = piece[1] - piece[0]

            if window and total + length > self.chunk_size:
                merged.append((window[0][0], window[-1][1]))

                # Keep only the overlap, and only as much as still fits
                while window and (total > self.chunk_overlap or total + length > self.chunk_size):
                    dropped = window.popleft()
                    total -= dropped[1] - dropped[0]

            window.append(piece)
            total += length

        if window:
            merged.append((window[0][0], window[-1][1]))

        return merged
