"""Data models for the local document search engine."""
from .chunk import Chunk, Embedding, SearchResult, IndexStats
from .document import SourceFile, ExtractionResult, LoadedContent
from .indexing import (
    IndexingStatus,
    IndexingProgress,
    FileIndexStatus,
    SkipReason,
    FileIndexResult,
    IndexingReport,
)

__all__ = [
    "Chunk",
    "Embedding",
    "SearchResult",
    "IndexStats",
    "SourceFile",
    "ExtractionResult",
    "LoadedContent",
    "IndexingStatus",
    "IndexingProgress",
    "FileIndexStatus",
    "SkipReason",
    "FileIndexResult",
    "IndexingReport",
]
