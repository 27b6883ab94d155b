"""Sentence-respecting chunking of extracted document text."""
import logging
import re
from typing import List

from config import MAX_CHUNK_SIZE

logger = logging.getLogger(__name__)

# Sentence boundary: terminal punctuation (ASCII or full-width CJK) followed by whitespace.
# The lookbehind keeps the punctuation attached to its sentence.
SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?。！？])\s+")


def split_into_chunks(text: str, max_chunk_size: int = MAX_CHUNK_SIZE) -> List[str]:
    """
    Split text into chunks of at most max_chunk_size characters.

    Sentences are accumulated greedily and joined with a single space. A
    sentence longer than the limit is hard-split at the character boundary.

    Args:
        text: Extracted document text
        max_chunk_size: Maximum chunk length in characters

    Returns:
        Ordered list of non-empty chunks

    Raises:
        ValueError: If max_chunk_size is not positive
    """
    if max_chunk_size <= 0:
        raise ValueError("max_chunk_size must be positive")

    if not text or not text.strip():
        return []

    if len(text) <= max_chunk_size:
        return [text]

    chunks: List[str] = []
    current_chunk = ""

    for sentence in SENTENCE_BOUNDARY.split(text):
        sentence = sentence.strip()
        if not sentence:
            continue

        candidate = f"{current_chunk} {sentence}" if current_chunk else sentence
        if len(candidate) <= max_chunk_size:
            current_chunk = candidate
            continue

        if current_chunk:
            chunks.append(current_chunk)

        if len(sentence) > max_chunk_size:
            for start in range(0, len(sentence), max_chunk_size):
                chunks.append(sentence[start:start + max_chunk_size])
            current_chunk = ""
        else:
            current_chunk = sentence

    if current_chunk:
        chunks.append(current_chunk)

    return [chunk for chunk in chunks if chunk.strip()]


class ChunkingEngine:
    """Segments document text into chunks suitable for embedding."""

    def __init__(self, max_chunk_size: int = MAX_CHUNK_SIZE):
        """
        Initialize ChunkingEngine.

        Args:
            max_chunk_size: Maximum chunk length in characters
        """
        if max_chunk_size <= 0:
            raise ValueError("max_chunk_size must be positive")
        self.max_chunk_size = max_chunk_size

    def chunk_text(self, text: str) -> List[str]:
        """Chunk text with the configured size limit."""
        chunks = split_into_chunks(text, self.max_chunk_size)
        logger.debug(f"Split {len(text)} characters into {len(chunks)} chunks")
        return chunks
