"""Chunk, embedding and search result data models."""
from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class Chunk:
    """Represents a bounded segment of a source document, the unit of retrieval."""
    id: str
    content: str
    source_name: str
    source_path: str  # Stable identifier of the originating file
    source_type: str  # MIME type or extension hint
    chunk_index: int
    total_chunks: int
    created_at: float  # Epoch seconds

    def metadata(self) -> Dict[str, Any]:
        """Provenance fields copied onto the chunk's embedding."""
        return {
            "source_name": self.source_name,
            "source_path": self.source_path,
            "source_type": self.source_type,
            "chunk_index": self.chunk_index,
            "total_chunks": self.total_chunks,
            "created_at": self.created_at,
        }


@dataclass
class Embedding:
    """Vector representation of exactly one chunk."""
    id: str
    chunk_id: str
    vector: List[float]
    content: str  # Denormalized chunk text
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SearchResult:
    """Chunk matched by a similarity search."""
    chunk: Chunk
    similarity: float  # Cosine similarity, -1.0 to 1.0
    relevant_text: str


@dataclass
class IndexStats:
    """Record counts held by the vector store."""
    chunk_count: int
    embedding_count: int
