"""Document indexing pipeline: load, chunk, embed and persist source files."""
import logging
import time
import uuid
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from config import EMBEDDING_DELAY, MIN_CONTENT_LENGTH
from models.chunk import Chunk, Embedding, IndexStats
from models.document import SourceFile
from models.indexing import (
    FileIndexResult,
    FileIndexStatus,
    IndexingProgress,
    IndexingReport,
    IndexingStatus,
    SkipReason,
)
from services.chunking_engine import ChunkingEngine
from services.document_loader import DocumentLoader, is_excluded
from services.embedding_model import EmbeddingBackendError, EmbeddingModel
from services.vector_store import StorageError, VectorStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[IndexingProgress], None]
FileInput = Union[SourceFile, str, Path]


class DocumentIndexer:
    """Turn files into persisted chunks and embeddings, one file at a time."""

    def __init__(
        self,
        vector_store: VectorStore,
        embedding_model: EmbeddingModel,
        chunking_engine: Optional[ChunkingEngine] = None,
        document_loader: Optional[DocumentLoader] = None,
        embedding_delay: float = EMBEDDING_DELAY,
        min_content_length: int = MIN_CONTENT_LENGTH
    ):
        """
        Initialize the indexer.

        Args:
            vector_store: Open VectorStore that receives chunks and embeddings
            embedding_model: Client used to embed each chunk
            chunking_engine: Splits extracted text into chunks
            document_loader: Finds files and obtains their text
            embedding_delay: Pause in seconds between consecutive embedding calls
            min_content_length: Files with less text than this are skipped
        """
        self.vector_store = vector_store
        self.embedding_model = embedding_model
        self.chunking_engine = chunking_engine or ChunkingEngine()
        self.document_loader = document_loader or DocumentLoader()
        self.embedding_delay = embedding_delay
        self.min_content_length = min_content_length
        self._listeners: List[ProgressCallback] = []
        self._embedded_once = False

    def add_progress_listener(self, callback: ProgressCallback) -> None:
        """Register a callback that receives IndexingProgress updates."""
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_progress_listener(self, callback: ProgressCallback) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _emit(self, total: int, processed: int, current_file: str, status: IndexingStatus) -> None:
        progress = IndexingProgress(
            total=total,
            processed=processed,
            current_file=current_file,
            status=status
        )
        for callback in list(self._listeners):
            try:
                callback(progress)
            except Exception as e:
                # Observers must not be able to break an indexing run
                logger.error(f"Progress listener failed: {str(e)}", exc_info=True)

    @staticmethod
    def _generate_id() -> str:
        return uuid.uuid4().hex

    def index_directory(self, root: Optional[Union[str, Path]]) -> IndexingReport:
        """
        Index every eligible file under a directory tree.

        The file list is built before processing so progress totals are known
        up front.

        Args:
            root: Directory to index, or None when selection was cancelled

        Returns:
            IndexingReport; cancelled=True when root is None

        Raises:
            NotADirectoryError: If root does not exist
            StorageError: If the vector store fails
        """
        if root is None:
            logger.info("Directory selection cancelled, nothing to index")
            return IndexingReport(cancelled=True)

        files = self.document_loader.discover_files(root)
        logger.info(f"Indexing {len(files)} files from {root}")
        return self.index_files(files)

    def index_files(self, files: Sequence[FileInput]) -> IndexingReport:
        """
        Index a caller-supplied list of files sequentially.

        File-level problems are recorded in the report and counted as
        processed; only storage failures stop the run.

        Args:
            files: SourceFile objects or filesystem paths

        Returns:
            IndexingReport with one FileIndexResult per file, in input order

        Raises:
            StorageError: If the vector store fails
        """
        total = len(files)
        report = IndexingReport()
        self._embedded_once = False

        for i, item in enumerate(files):
            name = item.name if isinstance(item, SourceFile) else Path(item).name
            self._emit(total, i, name, IndexingStatus.INDEXING)

            try:
                source = item if isinstance(item, SourceFile) else SourceFile.from_path(item)
                result = self.index_file(source)
            except StorageError:
                logger.error(f"Indexing aborted at {name}: vector store unavailable")
                self._emit(total, i, name, IndexingStatus.ERROR)
                raise
            except OSError as e:
                logger.error(f"Failed to read {name}: {str(e)}")
                result = FileIndexResult(
                    source_path=str(item.source_path if isinstance(item, SourceFile) else item),
                    source_name=name,
                    status=FileIndexStatus.FAILED,
                    reason=SkipReason.READ_ERROR,
                    errors=[str(e)]
                )

            report.results.append(result)
            self._emit(total, i + 1, name, IndexingStatus.INDEXING)

        self._emit(total, total, "", IndexingStatus.COMPLETE)
        logger.info(
            f"Indexing complete: {report.indexed} indexed, {report.skipped} skipped, "
            f"{report.failed} failed, {report.chunk_count} chunks"
        )
        return report

    def index_file(self, source: SourceFile) -> FileIndexResult:
        """
        Run the per-file pipeline and replace any chunks stored for the file.

        Args:
            source: File to index

        Returns:
            FileIndexResult describing what was stored or why nothing was

        Raises:
            OSError: If the file cannot be read
            StorageError: If the vector store fails
        """
        result = FileIndexResult(
            source_path=source.source_path,
            source_name=source.name,
            status=FileIndexStatus.INDEXED
        )

        if source.path is not None and source.path.exists() and not source.path.is_file():
            logger.info(f"Skipping {source.name}: not a regular file")
            result.status = FileIndexStatus.SKIPPED
            result.reason = SkipReason.UNSUPPORTED_TYPE
            return result

        if is_excluded(source.name):
            logger.info(f"Skipping excluded file {source.name}")
            result.status = FileIndexStatus.SKIPPED
            result.reason = SkipReason.UNSUPPORTED_TYPE
            return result

        content = self.document_loader.load_content(source)
        result.used_placeholder = content.placeholder
        if content.extraction_error:
            result.errors.append(content.extraction_error)

        # Stale chunks must never coexist with fresh ones
        self.vector_store.remove_chunks_for_source_path(source.source_path)

        if len(content.text.strip()) < self.min_content_length:
            logger.info(f"Skipping {source.name}: content shorter than {self.min_content_length} characters")
            result.status = FileIndexStatus.SKIPPED
            result.reason = SkipReason.TOO_SHORT
            return result

        segments = self.chunking_engine.chunk_text(content.text)
        created_at = time.time()

        for segment in segments:
            try:
                if self._embedded_once and self.embedding_delay > 0:
                    time.sleep(self.embedding_delay)
                self._embedded_once = True
                vector = self.embedding_model.embed_text(segment)
            except (EmbeddingBackendError, ValueError) as e:
                logger.error(f"Failed to embed chunk of {source.name}: {str(e)}")
                result.chunks_failed += 1
                result.errors.append(str(e))
                continue

            chunk = Chunk(
                id=self._generate_id(),
                content=segment,
                source_name=source.name,
                source_path=source.source_path,
                source_type=source.mime_type,
                chunk_index=result.chunks_indexed,
                total_chunks=len(segments),
                created_at=created_at
            )
            embedding = Embedding(
                id=self._generate_id(),
                chunk_id=chunk.id,
                vector=vector,
                content=segment,
                metadata=chunk.metadata()
            )
            self.vector_store.put_chunk_with_embedding(chunk, embedding)
            result.chunks_indexed += 1

        if result.chunks_indexed == 0:
            result.status = FileIndexStatus.SKIPPED
            result.reason = SkipReason.ALL_CHUNKS_FAILED
        elif result.chunks_failed:
            # Keep chunk_index/total_chunks a dense partition of what was stored
            self.vector_store.update_total_chunks(source.source_path, result.chunks_indexed)

        logger.info(
            f"Indexed {source.name}: {result.chunks_indexed}/{len(segments)} chunks"
        )
        return result

    def clear_index(self) -> None:
        """Remove every chunk and embedding from the store."""
        self.vector_store.clear_all()

    def stats(self) -> IndexStats:
        return self.vector_store.stats()
