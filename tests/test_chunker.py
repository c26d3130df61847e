"""Unit tests for paragraph-aware splitting."""

import pytest

from novtl.translator.chunker import DEFAULT_CHUNK_SIZE, split_text


def _content(text: str) -> str:
    return "".join(text.split())


class TestSplitText:
    """Test split_text."""

    def test_short_text_is_single_chunk(self):
        """Text within the limit comes back unchanged."""
        text = "This is a short text."
        assert split_text(text, 100) == [text]

    def test_exact_length_is_single_chunk(self):
        text = "a" * 10
        assert split_text(text, 10) == [text]

    def test_default_chunk_size(self):
        assert DEFAULT_CHUNK_SIZE == 3500
        assert split_text("x" * 3500) == ["x" * 3500]

    def test_chunks_respect_bound(self):
        """Every chunk fits within max_length."""
        text = "\n".join(f"Line {i} of a long chapter with some words." for i in range(100))
        chunks = split_text(text, 200)
        assert len(chunks) > 1
        assert all(len(chunk) <= 200 for chunk in chunks)

    def test_content_is_preserved(self):
        """Concatenated chunks keep every non-whitespace character in order."""
        text = "\n".join(f"Paragraph {i}: the Elder spoke at length." for i in range(40))
        chunks = split_text(text, 120)
        assert _content("".join(chunks)) == _content(text)

    def test_deterministic(self):
        text = "\n".join(f"Sentence {i}." * 5 for i in range(50))
        assert split_text(text, 150) == split_text(text, 150)

    def test_buffer_flushes_before_overflow(self):
        """A line that would fill the buffer to the limit starts a new chunk."""
        chunks = split_text("aaaa\nbbbb\ncc", 10)
        assert chunks == ["aaaa\nbbbb", "cc"]

    def test_oversized_paragraph_is_hard_sliced(self):
        chunks = split_text("a" * 25, 10)
        assert chunks == ["a" * 10, "a" * 10, "a" * 5]

    def test_oversized_paragraph_flushes_buffer_first(self):
        text = "intro\n" + "b" * 12 + "\noutro"
        chunks = split_text(text, 10)
        assert chunks == ["intro", "b" * 10, "bb", "outro"]

    def test_no_empty_chunks(self):
        text = "first\n\n\n\n" + "second " * 10 + "\n\n\n"
        chunks = split_text(text, 30)
        assert all(chunk.strip() for chunk in chunks)

    def test_invalid_length(self):
        with pytest.raises(ValueError):
            split_text("text", 0)
