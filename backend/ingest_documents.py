"""
Document Ingestion Script for the local document search engine.

This script:
1. Optionally clears the existing index
2. Warms up the embedding model
3. Indexes a directory tree and/or individual files
4. Reports what was indexed, skipped or failed
5. Optionally runs a search against the fresh index

Usage:
    python ingest_documents.py ~/Documents/notes
    python ingest_documents.py --files report.pdf todo.md --query "quarterly targets"
    python ingest_documents.py --clear
"""
import argparse
import logging
import sys
from typing import List, Optional

from config import VECTOR_DB_PATH, MAX_CHUNK_SIZE, DEFAULT_TOP_K, LOG_LEVEL, LOG_FORMAT
from logger import setup_logging
from models.indexing import FileIndexStatus, IndexingProgress, IndexingReport
from services.chunking_engine import ChunkingEngine
from services.document_indexer import DocumentIndexer
from services.embedding_model import EmbeddingModel, EmbeddingBackendError
from services.retrieval_engine import RetrievalEngine
from services.vector_store import VectorStore, StorageError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Index local documents for vector search")
    parser.add_argument("directory", nargs="?", help="Directory to index recursively")
    parser.add_argument("--files", nargs="+", default=[], help="Individual files to index")
    parser.add_argument("--db-path", default=VECTOR_DB_PATH, help="SQLite database path")
    parser.add_argument("--max-chunk-size", type=int, default=MAX_CHUNK_SIZE,
                        help="Maximum chunk length in characters")
    parser.add_argument("--clear", action="store_true", help="Clear the index before indexing")
    parser.add_argument("--stats", action="store_true", help="Print index statistics and exit")
    parser.add_argument("--query", help="Run a search after indexing")
    parser.add_argument("--top-k", type=int, default=DEFAULT_TOP_K, help="Results for --query")
    parser.add_argument("--no-prompt", action="store_true",
                        help="Do not ask for a directory when none is given")
    return parser


def prompt_for_directory() -> Optional[str]:
    """Ask for a directory; an empty answer or an abort means the selection was cancelled."""
    try:
        answer = input("Directory to index (leave empty to cancel): ").strip()
    except (EOFError, KeyboardInterrupt):
        return None
    return answer or None


def log_progress(progress: IndexingProgress) -> None:
    if progress.current_file:
        logger.info(f"[{progress.processed}/{progress.total}] {progress.current_file}")


def log_report(report: IndexingReport) -> None:
    """Log the per-file outcome of an indexing run."""
    for result in report.results:
        if result.status == FileIndexStatus.INDEXED:
            note = " (placeholder text)" if result.used_placeholder else ""
            logger.info(f"  ✓ {result.source_name}: {result.chunks_indexed} chunks{note}")
        else:
            reason = result.reason.value if result.reason else "unknown"
            logger.warning(f"  ✗ {result.source_name}: {result.status.value} ({reason})")

    logger.info(
        f"Files: {report.total} | indexed: {report.indexed} | skipped: {report.skipped} | "
        f"failed: {report.failed} | chunks: {report.chunk_count}"
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main ingestion process."""
    args = build_parser().parse_args(argv)
    setup_logging(LOG_LEVEL, LOG_FORMAT)

    try:
        with VectorStore(args.db_path) as vector_store:
            if args.stats:
                stats = vector_store.stats()
                logger.info(f"Chunks: {stats.chunk_count} | Embeddings: {stats.embedding_count}")
                return 0

            embedding_model = EmbeddingModel()
            indexer = DocumentIndexer(
                vector_store,
                embedding_model,
                chunking_engine=ChunkingEngine(args.max_chunk_size)
            )
            indexer.add_progress_listener(log_progress)

            if args.clear:
                logger.info("Clearing existing index...")
                indexer.clear_index()
                logger.info("✓ Index cleared")
                if not args.directory and not args.files and not args.query:
                    return 0

            directory = args.directory
            if directory is None and not args.files and not args.query and not args.no_prompt:
                directory = prompt_for_directory()
                if directory is None:
                    logger.info("Directory selection cancelled, nothing indexed")
                    return 0

            if directory or args.files:
                logger.info("Warming up embedding model...")
                if not embedding_model.warmup():
                    logger.warning("Embedding backend did not respond to warmup; chunks may be skipped")

            if directory:
                logger.info(f"Indexing directory {directory}...")
                log_report(indexer.index_directory(directory))

            if args.files:
                logger.info(f"Indexing {len(args.files)} files...")
                log_report(indexer.index_files(args.files))

            if args.query:
                retrieval_engine = RetrievalEngine(vector_store, embedding_model)
                _, context = retrieval_engine.build_context(args.query, top_k=args.top_k)
                if context:
                    print(context)
                else:
                    logger.info("No matching documents")

            stats = indexer.stats()
            logger.info(f"✓ Index holds {stats.chunk_count} chunks and {stats.embedding_count} embeddings")
            return 0

    except NotADirectoryError as e:
        logger.error(str(e))
        return 1
    except EmbeddingBackendError as e:
        logger.error(f"Search failed: {e.message}")
        return 1
    except StorageError as e:
        logger.error(f"Indexing failed: {str(e)}")
        return 1
    except KeyboardInterrupt:
        logger.warning("\nIngestion interrupted by user")
        return 1


if __name__ == "__main__":
    sys.exit(main())
