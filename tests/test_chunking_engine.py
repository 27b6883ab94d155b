"""Unit tests for the sentence-respecting chunker."""
import re
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from config import MAX_CHUNK_SIZE
from services.chunking_engine import ChunkingEngine, split_into_chunks


SAMPLE_TEXT = (
    "Vector search ranks chunks by cosine similarity. Each chunk is embedded once! "
    "Why split on sentences? Because a sentence is a natural unit of meaning. "
    "Supercalifragilisticexpialidociouswordthatgoesonandonwithoutanyspacesatall. "
    "短い文です。 もう一つの文です。 Short tail."
)


def _strip_ws(text: str) -> str:
    return re.sub(r"\s+", "", text)


class TestSplitIntoChunks:
    """Test suite for split_into_chunks."""

    def test_basic_sentences(self):
        """Three short sentences with a 20-character limit produce three chunks."""
        chunks = split_into_chunks("The cat sat. The dog ran. The bird flew.", 20)

        assert chunks == ["The cat sat.", "The dog ran.", "The bird flew."]

    def test_short_text_returned_unchanged(self):
        """Text within the limit is a single chunk, whitespace included."""
        text = "  Hello world.  Still short.  "

        assert split_into_chunks(text, 500) == [text]

    def test_blank_text_returns_nothing(self):
        """Empty and whitespace-only input yield no chunks."""
        assert split_into_chunks("", 20) == []
        assert split_into_chunks("   \n\t ", 20) == []

    def test_sentences_accumulate_until_limit(self):
        """Sentences are packed greedily and joined by a single space."""
        chunks = split_into_chunks("Really? Yes! Fine.", 10)

        assert chunks == ["Really?", "Yes! Fine."]

    def test_long_sentence_is_hard_split(self):
        """A sentence longer than the limit is cut at character boundaries."""
        chunks = split_into_chunks("a" * 45, 20)

        assert chunks == ["a" * 20, "a" * 20, "a" * 5]

    def test_long_sentence_flushes_pending_chunk(self):
        """The running chunk is flushed before a hard-split sentence."""
        chunks = split_into_chunks("Hi there. " + "b" * 25 + ". End.", 12)

        assert chunks[0] == "Hi there."
        assert "".join(chunks[1:-1]) == "b" * 25 + "."
        assert chunks[-1] == "End."

    def test_full_width_punctuation(self):
        """Full-width CJK sentence terminals followed by whitespace split sentences."""
        chunks = split_into_chunks("第一文です。 第二文です。 第三文です。", 10)

        assert chunks == ["第一文です。", "第二文です。", "第三文です。"]

    def test_newlines_count_as_whitespace(self):
        """Sentence boundaries may be followed by newlines."""
        chunks = split_into_chunks("First line here.\nSecond line here.\n\nThird.", 20)

        assert chunks == ["First line here.", "Second line here.", "Third."]

    def test_no_boundary_without_whitespace(self):
        """Punctuation not followed by whitespace does not end a sentence."""
        chunks = split_into_chunks("version1.2.3 is out", 10)

        assert "".join(chunks) == "version1.2.3 is out"
        assert all(len(c) <= 10 for c in chunks)

    @pytest.mark.parametrize("max_size", [1, 5, 13, 40, 80, 200])
    def test_chunk_size_bound(self, max_size):
        """No chunk ever exceeds the configured limit."""
        chunks = split_into_chunks(SAMPLE_TEXT, max_size)

        assert chunks
        assert all(0 < len(chunk) <= max_size for chunk in chunks)

    @pytest.mark.parametrize("max_size", [1, 7, 30, 100, 1000])
    def test_chunk_coverage(self, max_size):
        """Concatenated chunks reproduce the input modulo whitespace."""
        chunks = split_into_chunks(SAMPLE_TEXT, max_size)

        assert _strip_ws("".join(chunks)) == _strip_ws(SAMPLE_TEXT)

    def test_no_empty_chunks(self):
        """Whitespace-only segments are dropped."""
        chunks = split_into_chunks("One.   \n\n   Two.      Three.", 5)

        assert all(chunk.strip() for chunk in chunks)

    def test_invalid_size(self):
        """A non-positive limit is rejected."""
        with pytest.raises(ValueError, match="max_chunk_size must be positive"):
            split_into_chunks("text", 0)

        with pytest.raises(ValueError):
            split_into_chunks("text", -5)

    def test_deterministic(self):
        """Same input, same output."""
        assert split_into_chunks(SAMPLE_TEXT, 50) == split_into_chunks(SAMPLE_TEXT, 50)


class TestChunkingEngine:
    """Test suite for ChunkingEngine."""

    def test_uses_configured_size(self):
        engine = ChunkingEngine(max_chunk_size=20)

        assert engine.chunk_text("The cat sat. The dog ran. The bird flew.") == [
            "The cat sat.",
            "The dog ran.",
            "The bird flew.",
        ]

    def test_default_size(self):
        engine = ChunkingEngine()

        assert engine.max_chunk_size == MAX_CHUNK_SIZE

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            ChunkingEngine(max_chunk_size=0)
