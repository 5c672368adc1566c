"""Tests for the recursive text splitter."""

import pytest
from retrieval.chunker import RecursiveTextSplitter


def reconstruct(chunks, overlap):
    """Join chunks after dropping each overlap prefix."""
    if not chunks:
        return ""
    return chunks[0] + "".join(chunk[overlap:] for chunk in chunks[1:])


SAMPLE_TEXT = "\n\n".join(
    " ".join(f"Sentence {p}-{s} talks about topic {p * s}." for s in range(6))
    for p in range(8)
)


class TestRecursiveTextSplitter:
    """Test chunk sizes, overlap and reconstruction."""

    def setup_method(self):
        """Set up test fixtures."""
        self.splitter = RecursiveTextSplitter(chunk_size=100, chunk_overlap=20)

    def test_reconstructs_original_text(self):
        """Test that dropping overlaps and joining gives the input back."""
        chunks = self.splitter.split_text(SAMPLE_TEXT)

        assert len(chunks) > 1
        assert reconstruct(chunks, 20) == SAMPLE_TEXT

    def test_chunks_respect_target_size(self):
        """Test that no chunk exceeds the target size."""
        chunks = self.splitter.split_text(SAMPLE_TEXT)

        assert all(0 < len(chunk) <= 100 for chunk in chunks)

    def test_adjacent_chunks_share_overlap(self):
        """Test that each chunk starts with the previous chunk's tail."""
        chunks = self.splitter.split_text(SAMPLE_TEXT)

        for previous, current in zip(chunks, chunks[1:]):
            assert previous[-20:] == current[:20]

    def test_short_text_is_single_chunk(self):
        """Test that text within the target size is returned as-is."""
        assert self.splitter.split_text("A. B. C.") == ["A. B. C."]

    def test_blank_text_yields_no_chunks(self):
        """Test that empty and whitespace-only text produce nothing."""
        assert self.splitter.split_text("") == []
        assert self.splitter.split_text("   \n\n  ") == []

    def test_hard_cut_without_separators(self):
        """Test forward progress on text with no separators at all."""
        text = "x" * 450
        chunks = self.splitter.split_text(text)

        assert all(0 < len(chunk) <= 100 for chunk in chunks)
        assert reconstruct(chunks, 20) == text

    def test_prefers_paragraph_boundaries(self):
        """Test that the coarsest separator wins when it fits."""
        text = "a" * 50 + "\n\n" + "b" * 50 + "\n\n" + "c" * 50
        chunks = self.splitter.split_text(text)

        assert chunks[0] == "a" * 50 + "\n\n"
        assert reconstruct(chunks, 20) == text

    def test_falls_back_to_finer_separators(self):
        """Test that an oversized paragraph is split on spaces."""
        words = " ".join(f"word{i}" for i in range(60))
        chunks = self.splitter.split_text(words)

        assert reconstruct(chunks, 20) == words
        # Every chunk body ends on a word boundary except possibly the last
        for chunk in chunks[:-1]:
            assert chunk.endswith(" ")

    def test_zero_overlap(self):
        """Test that chunks tile the text when overlap is disabled."""
        splitter = RecursiveTextSplitter(chunk_size=50, chunk_overlap=0)
        chunks = splitter.split_text(SAMPLE_TEXT)

        assert "".join(chunks) == SAMPLE_TEXT
        assert all(len(chunk) <= 50 for chunk in chunks)

    def test_default_configuration(self):
        """Test the default target size and overlap."""
        splitter = RecursiveTextSplitter()
        text = SAMPLE_TEXT * 5
        chunks = splitter.split_text(text)

        assert splitter.chunk_size == 1000
        assert splitter.chunk_overlap == 200
        assert all(len(chunk) <= 1000 for chunk in chunks)
        assert reconstruct(chunks, 200) == text

    @pytest.mark.parametrize("size,overlap", [(0, 0), (100, 100), (100, 150), (100, -1)])
    def test_invalid_configuration(self, size, overlap):
        """Test that impossible size/overlap combinations are rejected."""
        with pytest.raises(ValueError):
            RecursiveTextSplitter(chunk_size=size, chunk_overlap=overlap)
