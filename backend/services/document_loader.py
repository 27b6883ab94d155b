"""Document discovery and content loading for indexing."""
import fnmatch
import logging
import os
from pathlib import Path
from typing import List, Optional, Union

from models.document import LoadedContent, SourceFile
from services.text_extractor import (
    DocumentTextExtractor,
    ExtractionError,
    OFFICE_EXTENSIONS,
    PDF_EXTENSIONS,
    TextExtractor,
)

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = {
    ".txt", ".md", ".js", ".ts", ".jsx", ".tsx", ".py", ".java", ".cpp", ".c",
    ".html", ".css", ".json", ".xml", ".yml", ".yaml", ".sql", ".sh", ".bat",
    ".php", ".rb", ".go", ".rs", ".swift", ".kt", ".scala", ".clj", ".hs",
}

# Extensions picked up by directory enumeration
INDEXABLE_EXTENSIONS = (TEXT_EXTENSIONS | PDF_EXTENSIONS | OFFICE_EXTENSIONS) - {".xlsm"}

# Directory names never descended into
EXCLUDED_DIRECTORIES = {
    "node_modules", ".git", ".next", "build", "dist", ".cache",
    "coverage", ".nyc_output", "logs",
}

# File name patterns never indexed
EXCLUDED_FILE_PATTERNS = ["*.log", "*.tmp", "*.temp"]

TEXT_MIME_HINTS = ("markdown", "json", "xml", "javascript", "x-sh")


def is_excluded(path: Union[str, Path]) -> bool:
    """True when any directory on the path or the file name itself is excluded."""
    parts = Path(path).parts
    if any(part in EXCLUDED_DIRECTORIES for part in parts[:-1]):
        return True
    name = parts[-1] if parts else ""
    return any(fnmatch.fnmatch(name.lower(), pattern) for pattern in EXCLUDED_FILE_PATTERNS)


def should_index(path: Union[str, Path]) -> bool:
    """True for non-excluded files with a supported extension."""
    return not is_excluded(path) and Path(path).suffix.lower() in INDEXABLE_EXTENSIONS


def is_text_file(source: SourceFile) -> bool:
    """Plain-text-like files are decoded directly instead of going through extraction."""
    if source.extension in TEXT_EXTENSIONS:
        return True
    # OOXML mime types contain "xml"
    if is_document_file(source):
        return False
    mime_type = source.mime_type or ""
    return mime_type.startswith("text/") or any(hint in mime_type for hint in TEXT_MIME_HINTS)


def is_document_file(source: SourceFile) -> bool:
    """PDF and Office formats that need the text-extraction collaborator."""
    return (
        source.extension in PDF_EXTENSIONS
        or source.extension in OFFICE_EXTENSIONS
        or source.mime_type == "application/pdf"
    )


class DocumentLoader:
    """Finds indexable files and turns them into text."""

    def __init__(self, extractor: Optional[TextExtractor] = None):
        """
        Initialize DocumentLoader.

        Args:
            extractor: Collaborator for PDF and Office formats
        """
        self.extractor = extractor or DocumentTextExtractor()

    def discover_files(self, root: Union[str, Path]) -> List[SourceFile]:
        """
        Recursively list every indexable file under root.

        Walks in sorted order so the list is stable between runs. Excluded
        directories are pruned; unreadable sub-directories are logged and skipped.

        Args:
            root: Directory to enumerate

        Returns:
            List of SourceFile in enumeration order

        Raises:
            NotADirectoryError: If root is not an existing directory
        """
        root_path = Path(root)
        if not root_path.is_dir():
            raise NotADirectoryError(f"Documents directory not found: {root_path}")

        def on_walk_error(error: OSError) -> None:
            logger.error(f"Cannot read {error.filename}: {error.strerror}")

        files: List[SourceFile] = []
        for dirpath, dirnames, filenames in os.walk(root_path, onerror=on_walk_error):
            dirnames[:] = sorted(d for d in dirnames if d not in EXCLUDED_DIRECTORIES)

            for filename in sorted(filenames):
                if not should_index(filename):
                    continue
                file_path = Path(dirpath) / filename
                try:
                    files.append(SourceFile.from_path(file_path))
                except OSError as e:
                    logger.error(f"Error reading {file_path}: {str(e)}")
                    continue

        logger.info(f"Found {len(files)} indexable files in {root_path}")
        return files

    def load_content(self, source: SourceFile) -> LoadedContent:
        """
        Obtain the text to index for a file.

        Text-like files are decoded as UTF-8. PDF and Office files go through
        the extractor; an extraction failure yields a short diagnostic
        placeholder. Other binaries are described by their metadata.

        Raises:
            OSError: If the file cannot be read
        """
        if is_text_file(source):
            data = source.read_bytes()
            return LoadedContent(text=data.decode("utf-8", errors="replace"))

        if is_document_file(source):
            data = source.read_bytes()
            try:
                result = self.extractor.extract(data, source.name, source.mime_type)
                return LoadedContent(text=result.text)
            except ExtractionError as e:
                logger.warning(f"Extraction failed for {source.name}, indexing placeholder: {str(e)}")
                kind = "PDF" if source.extension in PDF_EXTENSIONS else "Office Document"
                return LoadedContent(
                    text=f"[{kind}: {source.name}] Unable to extract text content.",
                    placeholder=True,
                    extraction_error=str(e),
                )

        return LoadedContent(
            text=f"File: {source.name}\nType: {source.mime_type}\nSize: {source.size} bytes",
            placeholder=True,
        )
