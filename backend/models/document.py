"""Source file and extracted content data models."""
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass
class SourceFile:
    """A file handed to the indexer, either on disk or held in memory."""
    source_path: str  # Stable identifier used for replace-on-reindex
    name: str
    mime_type: str = DEFAULT_MIME_TYPE
    size: int = 0
    path: Optional[Path] = None
    data: Optional[bytes] = field(default=None, repr=False)

    @classmethod
    def from_path(cls, path: Union[str, Path], source_path: Optional[str] = None) -> "SourceFile":
        """Describe a file on disk; the resolved POSIX path is the default identifier."""
        file_path = Path(path)
        mime_type, _ = mimetypes.guess_type(file_path.name)
        return cls(
            source_path=source_path or file_path.resolve().as_posix(),
            name=file_path.name,
            mime_type=mime_type or DEFAULT_MIME_TYPE,
            size=file_path.stat().st_size,
            path=file_path,
        )

    @classmethod
    def from_bytes(
        cls,
        name: str,
        data: bytes,
        mime_type: Optional[str] = None,
        source_path: Optional[str] = None,
    ) -> "SourceFile":
        """Describe an uploaded or dropped file; its name is the default identifier."""
        if mime_type is None:
            mime_type, _ = mimetypes.guess_type(name)
        return cls(
            source_path=source_path or name,
            name=name,
            mime_type=mime_type or DEFAULT_MIME_TYPE,
            size=len(data),
            data=data,
        )

    @property
    def extension(self) -> str:
        return Path(self.name).suffix.lower()

    def read_bytes(self) -> bytes:
        """Return the file contents, reading from disk when not held in memory."""
        if self.data is not None:
            return self.data
        if self.path is None:
            raise FileNotFoundError(f"No data or path for {self.name}")
        return self.path.read_bytes()


@dataclass
class ExtractionResult:
    """Text extracted from a binary document format."""
    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LoadedContent:
    """Text ready for chunking, with how it was obtained."""
    text: str
    placeholder: bool = False
    extraction_error: Optional[str] = None
