"""Recursive text splitter producing overlapping chunks."""

import logging
from typing import List, Optional

logger = logging.getLogger(__name__)


DEFAULT_SEPARATORS = ["\n\n", "\n", ". ", " ", ""]


class RecursiveTextSplitter:
    """
    Split text on the coarsest separator available, then merge the pieces
    greedily into chunks that share a fixed overlap.

    Each chunk after the first starts with the last ``chunk_overlap``
    characters of the chunk before it, so dropping that prefix from every
    chunk after the first and joining the rest gives back the input exactly.
    """

    def __init__(
        self,
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
        separators: Optional[List[str]] = None
    ):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if chunk_overlap < 0 or chunk_overlap >= chunk_size:
            raise ValueError("chunk_overlap must be in [0, chunk_size)")

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.separators = list(separators) if separators is not None else list(DEFAULT_SEPARATORS)
        if "" not in self.separators:
            # Hard cut keeps the splitter moving on text without separators
            self.separators.append("")

    @property
    def max_piece_size(self) -> int:
        """Largest atomic piece that still fits after an overlap prefix."""
        return self.chunk_size - self.chunk_overlap

    def split_text(self, text: str) -> List[str]:
        """
        Split text into overlapping chunks.

        Args:
            text: Raw document text

        Returns:
            List of non-empty chunks (empty for blank input)
        """
        if not text or not text.strip():
            return []

        if len(text) <= self.chunk_size:
            return [text]

        pieces = self._split_pieces(text, self.separators)
        chunks = self._merge_pieces(text, pieces)
        logger.debug(f"Split {len(text)} characters into {len(chunks)} chunks")
        return chunks

    def _split_pieces(self, text: str, separators: List[str]) -> List[str]:
        """Break text into pieces no longer than max_piece_size, separators kept."""
        limit = self.max_piece_size
        if len(text) <= limit:
            return [text]

        separator = separators[0]
        remaining = separators[1:]

        if separator == "":
            return [text[i:i + limit] for i in range(0, len(text), limit)]

        if separator not in text:
            return self._split_pieces(text, remaining)

        parts = text.split(separator)
        # Re-attach the separator to the piece it ended
        splits = [part + separator for part in parts[:-1]] + [parts[-1]]

        pieces: List[str] = []
        for split in splits:
            if not split:
                continue
            if len(split) <= limit:
                pieces.append(split)
            else:
                pieces.extend(self._split_pieces(split, remaining))
        return pieces

    def _merge_pieces(self, text: str, pieces: List[str]) -> List[str]:
        """Greedily pack pieces into chunks, prefixing each with the overlap."""
        chunks: List[str] = []
        position = 0
        index = 0

        while index < len(pieces):
            prefix = ""
            if chunks and self.chunk_overlap:
                prefix = text[max(0, position - self.chunk_overlap):position]

            body_length = 0
            # Always take at least one piece so the loop makes progress
            while index < len(pieces):
                piece_length = len(pieces[index])
                if body_length and len(prefix) + body_length + piece_length > self.chunk_size:
                    break
                body_length += piece_length
                index += 1

            chunks.append(prefix + text[position:position + body_length])
            position += body_length

        return chunks
