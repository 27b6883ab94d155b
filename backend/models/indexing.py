"""Indexing progress and report data models."""
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class IndexingStatus(str, Enum):
    """State of an indexing run."""
    INDEXING = "indexing"
    COMPLETE = "complete"
    ERROR = "error"


class FileIndexStatus(str, Enum):
    """Outcome of indexing a single file."""
    INDEXED = "indexed"
    SKIPPED = "skipped"
    FAILED = "failed"


class SkipReason(str, Enum):
    """Why a file produced no chunks."""
    TOO_SHORT = "too_short"
    UNSUPPORTED_TYPE = "unsupported_type"
    ALL_CHUNKS_FAILED = "all_chunks_failed"
    READ_ERROR = "read_error"


@dataclass
class IndexingProgress:
    """Progress update emitted to listeners during an indexing run."""
    total: int
    processed: int
    current_file: str
    status: IndexingStatus

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


@dataclass
class FileIndexResult:
    """Per-file outcome of an indexing run."""
    source_path: str
    source_name: str
    status: FileIndexStatus
    reason: Optional[SkipReason] = None
    chunks_indexed: int = 0
    chunks_failed: int = 0
    used_placeholder: bool = False
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        data["reason"] = self.reason.value if self.reason else None
        return data


@dataclass
class IndexingReport:
    """Results of an indexing run, one entry per file in processing order."""
    results: List[FileIndexResult] = field(default_factory=list)
    cancelled: bool = False

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def indexed(self) -> int:
        return sum(1 for r in self.results if r.status == FileIndexStatus.INDEXED)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.status == FileIndexStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status == FileIndexStatus.FAILED)

    @property
    def chunk_count(self) -> int:
        return sum(r.chunks_indexed for r in self.results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cancelled": self.cancelled,
            "total": self.total,
            "indexed": self.indexed,
            "skipped": self.skipped,
            "failed": self.failed,
            "chunk_count": self.chunk_count,
            "results": [r.to_dict() for r in self.results],
        }
