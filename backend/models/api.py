"""Request and response models for the HTTP API."""
from typing import List, Optional

from pydantic import BaseModel, Field

from config import DEFAULT_TOP_K


class SearchRequest(BaseModel):
    """Body of POST /search."""
    query: str
    top_k: int = Field(default=DEFAULT_TOP_K, ge=1, le=50)


class SearchHit(BaseModel):
    """A single ranked chunk with its provenance."""
    chunk_id: str
    content: str
    source_name: str
    source_path: str
    source_type: str
    chunk_index: int
    total_chunks: int
    similarity: float


class SearchResponse(BaseModel):
    """Ranked chunks plus the context block rendered from them."""
    results: List[SearchHit]
    context: Optional[str] = None


class IndexDirectoryRequest(BaseModel):
    """Body of POST /index/directory; a null path means selection was cancelled."""
    path: Optional[str] = None


class IndexFilesRequest(BaseModel):
    """Body of POST /index/files."""
    paths: List[str] = Field(min_length=1)


class FileResultResponse(BaseModel):
    source_path: str
    source_name: str
    status: str
    reason: Optional[str] = None
    chunks_indexed: int = 0
    chunks_failed: int = 0
    used_placeholder: bool = False
    errors: List[str] = Field(default_factory=list)


class IndexReportResponse(BaseModel):
    """Summary of an indexing run."""
    cancelled: bool
    total: int
    indexed: int
    skipped: int
    failed: int
    chunk_count: int
    results: List[FileResultResponse]


class ProgressResponse(BaseModel):
    total: int = 0
    processed: int = 0
    current_file: str = ""
    status: str = "idle"


class StatsResponse(BaseModel):
    chunk_count: int
    embedding_count: int
