"""Vector store implementation using an embedded SQLite database."""
import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Union

import numpy as np

from models.chunk import Chunk, Embedding, IndexStats, SearchResult
from config import VECTOR_DB_PATH

logger = logging.getLogger(__name__)

VECTOR_DTYPE = np.dtype("<f4")

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;

CREATE TABLE IF NOT EXISTS chunks (
  id TEXT PRIMARY KEY,
  content TEXT NOT NULL,
  source_name TEXT NOT NULL,
  source_path TEXT NOT NULL,
  source_type TEXT NOT NULL,
  chunk_index INTEGER NOT NULL,
  total_chunks INTEGER NOT NULL,
  created_at REAL NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_chunks_source_path ON chunks(source_path);
CREATE INDEX IF NOT EXISTS idx_chunks_source_name ON chunks(source_name);

CREATE TABLE IF NOT EXISTS embeddings (
  id TEXT PRIMARY KEY,
  chunk_id TEXT NOT NULL,
  vector BLOB NOT NULL,
  dimension INTEGER NOT NULL,
  norm REAL NOT NULL,
  content TEXT NOT NULL,
  metadata TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_embeddings_chunk_id ON embeddings(chunk_id);
"""

CHUNK_COLUMNS = "id, content, source_name, source_path, source_type, chunk_index, total_chunks, created_at"


class StorageError(RuntimeError):
    """Read or write failure in the persistence layer."""


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors; 0.0 when either has zero magnitude.

    Scalar form of the vectorized scoring in VectorStore.search_similar.

    Raises:
        ValueError: If the vectors differ in length
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise ValueError(f"Vector dimensions differ: {va.shape[0]} != {vb.shape[0]}")
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(np.dot(va, vb) / denom)


def _row_to_chunk(row: sqlite3.Row) -> Chunk:
    return Chunk(
        id=row["id"],
        content=row["content"],
        source_name=row["source_name"],
        source_path=row["source_path"],
        source_type=row["source_type"],
        chunk_index=row["chunk_index"],
        total_chunks=row["total_chunks"],
        created_at=row["created_at"],
    )


class VectorStore:
    """Store chunks and their embeddings and answer cosine-similarity queries."""

    def __init__(self, db_path: Union[str, Path] = VECTOR_DB_PATH):
        """
        Initialize the vector store. Call open() before use.

        Args:
            db_path: SQLite database file, or ":memory:" for a transient store
        """
        self.db_path = str(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    def open(self) -> "VectorStore":
        """
        Open the database and create the schema if needed.

        Raises:
            StorageError: If the database cannot be opened
        """
        if self._conn is not None:
            return self

        try:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.executescript(SCHEMA_SQL)
        except (sqlite3.Error, OSError) as e:
            error_msg = f"Failed to open vector store at {self.db_path}: {str(e)}"
            logger.error(error_msg)
            raise StorageError(error_msg) from e

        self._conn = conn
        logger.info(f"Opened VectorStore at {self.db_path}")
        return self

    def close(self) -> None:
        """Release the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.info("Closed VectorStore")

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def __enter__(self) -> "VectorStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @contextmanager
    def _transaction(self, action: str) -> Iterator[sqlite3.Connection]:
        """Run a block atomically; any sqlite error rolls back and becomes StorageError."""
        with self._lock:
            if self._conn is None:
                raise StorageError("Vector store is not open")
            try:
                with self._conn:
                    yield self._conn
            except sqlite3.Error as e:
                error_msg = f"Failed to {action}: {str(e)}"
                logger.error(error_msg)
                raise StorageError(error_msg) from e

    @staticmethod
    def _insert_chunk(conn: sqlite3.Connection, chunk: Chunk) -> None:
        conn.execute(
            f"INSERT OR REPLACE INTO chunks ({CHUNK_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                chunk.id,
                chunk.content,
                chunk.source_name,
                chunk.source_path,
                chunk.source_type,
                chunk.chunk_index,
                chunk.total_chunks,
                chunk.created_at,
            ),
        )

    @staticmethod
    def _insert_embedding(conn: sqlite3.Connection, embedding: Embedding) -> None:
        vector = np.asarray(embedding.vector, dtype=VECTOR_DTYPE)
        if vector.ndim != 1 or vector.size == 0:
            raise ValueError("Embedding vector must be a non-empty 1-D sequence")
        conn.execute(
            "INSERT OR REPLACE INTO embeddings (id, chunk_id, vector, dimension, norm, content, metadata) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                embedding.id,
                embedding.chunk_id,
                vector.tobytes(),
                int(vector.size),
                float(np.linalg.norm(vector.astype(np.float64))),
                embedding.content,
                json.dumps(embedding.metadata),
            ),
        )

    def put_chunk(self, chunk: Chunk) -> None:
        """Insert or replace a chunk by id."""
        with self._transaction("store chunk") as conn:
            self._insert_chunk(conn, chunk)

    def put_embedding(self, embedding: Embedding) -> None:
        """Insert or replace an embedding by id."""
        with self._transaction("store embedding") as conn:
            self._insert_embedding(conn, embedding)

    def put_chunk_with_embedding(self, chunk: Chunk, embedding: Embedding) -> None:
        """Insert a chunk and its embedding in one transaction."""
        with self._transaction("store chunk and embedding") as conn:
            self._insert_chunk(conn, chunk)
            self._insert_embedding(conn, embedding)

    def update_total_chunks(self, source_path: str, total_chunks: int) -> None:
        """Rewrite total_chunks for every chunk of a source, in the chunks and embedding metadata."""
        with self._transaction("update chunk totals") as conn:
            conn.execute(
                "UPDATE chunks SET total_chunks = ? WHERE source_path = ?",
                (total_chunks, source_path),
            )
            rows = conn.execute(
                "SELECT e.id, e.metadata FROM embeddings e JOIN chunks c ON c.id = e.chunk_id "
                "WHERE c.source_path = ?",
                (source_path,),
            ).fetchall()
            for row in rows:
                metadata = json.loads(row["metadata"])
                metadata["total_chunks"] = total_chunks
                conn.execute(
                    "UPDATE embeddings SET metadata = ? WHERE id = ?",
                    (json.dumps(metadata), row["id"]),
                )

    def get_chunk(self, chunk_id: str) -> Optional[Chunk]:
        with self._transaction("read chunk") as conn:
            row = conn.execute(
                f"SELECT {CHUNK_COLUMNS} FROM chunks WHERE id = ?", (chunk_id,)
            ).fetchone()
        return _row_to_chunk(row) if row else None

    def chunks_by_source_path(self, source_path: str) -> List[Chunk]:
        """Return the chunks of one source file, ordered by chunk_index."""
        with self._transaction("read chunks by source path") as conn:
            rows = conn.execute(
                f"SELECT {CHUNK_COLUMNS} FROM chunks WHERE source_path = ? ORDER BY chunk_index",
                (source_path,),
            ).fetchall()
        return [_row_to_chunk(row) for row in rows]

    def remove_chunks_for_source_path(self, source_path: str) -> int:
        """
        Delete every chunk of a source file together with its embeddings.

        Both deletes run in one transaction, so either all records go or none do.

        Returns:
            Number of chunks removed
        """
        with self._transaction("remove chunks for source path") as conn:
            conn.execute(
                "DELETE FROM embeddings WHERE chunk_id IN (SELECT id FROM chunks WHERE source_path = ?)",
                (source_path,),
            )
            removed = conn.execute(
                "DELETE FROM chunks WHERE source_path = ?", (source_path,)
            ).rowcount

        if removed:
            logger.debug(f"Removed {removed} chunks for {source_path}")
        return removed

    def search_similar(self, query_vector: Sequence[float], top_k: int = 5) -> List[SearchResult]:
        """
        Find the chunks most similar to a query vector using cosine similarity.

        Scans every stored embedding, sorts by descending similarity and
        returns at most top_k results, one per chunk. Embeddings whose chunk
        no longer exists are skipped and the next-best candidates fill their
        place.

        Args:
            query_vector: Embedding of the query
            top_k: Maximum number of results

        Returns:
            List of SearchResult ordered by non-increasing similarity

        Raises:
            ValueError: If query_vector is empty or top_k is not positive
            StorageError: If the database read fails
        """
        query = np.asarray(query_vector, dtype=np.float64)
        if query.ndim != 1 or query.size == 0:
            raise ValueError("Query vector cannot be empty")

        if top_k <= 0:
            raise ValueError("top_k must be positive")

        with self._transaction("search vector store") as conn:
            rows = conn.execute(
                "SELECT chunk_id, vector, dimension, norm, content FROM embeddings"
            ).fetchall()

            candidates = [row for row in rows if row["dimension"] == query.size]
            if len(candidates) < len(rows):
                logger.warning(
                    f"Ignoring {len(rows) - len(candidates)} embeddings with dimension "
                    f"different from query ({query.size})"
                )
            if not candidates:
                return []

            matrix = np.vstack([
                np.frombuffer(row["vector"], dtype=VECTOR_DTYPE, count=row["dimension"])
                for row in candidates
            ]).astype(np.float64)
            norms = np.array([row["norm"] for row in candidates], dtype=np.float64)

            denominators = norms * np.linalg.norm(query)
            dots = matrix @ query
            similarities = np.divide(
                dots, denominators, out=np.zeros_like(dots), where=denominators != 0
            )

            order = np.argsort(-similarities, kind="stable")

            results: List[SearchResult] = []
            seen_chunks = set()
            for idx in order:
                row = candidates[idx]
                chunk_id = row["chunk_id"]
                if chunk_id in seen_chunks:
                    continue

                chunk_row = conn.execute(
                    f"SELECT {CHUNK_COLUMNS} FROM chunks WHERE id = ?", (chunk_id,)
                ).fetchone()
                if chunk_row is None:
                    logger.debug(f"Skipping orphaned embedding for chunk {chunk_id}")
                    continue

                seen_chunks.add(chunk_id)
                results.append(SearchResult(
                    chunk=_row_to_chunk(chunk_row),
                    similarity=float(np.clip(similarities[idx], -1.0, 1.0)),
                    relevant_text=row["content"],
                ))
                if len(results) >= top_k:
                    break

        logger.debug(f"Found {len(results)} chunks for query")
        return results

    def all_chunks(self) -> List[Chunk]:
        with self._transaction("read chunks") as conn:
            rows = conn.execute(
                f"SELECT {CHUNK_COLUMNS} FROM chunks ORDER BY source_path, chunk_index"
            ).fetchall()
        return [_row_to_chunk(row) for row in rows]

    def clear_all(self) -> None:
        """Delete all chunks and embeddings."""
        with self._transaction("clear vector store") as conn:
            conn.execute("DELETE FROM embeddings")
            conn.execute("DELETE FROM chunks")
        logger.info("Cleared all chunks from vector store")

    def stats(self) -> IndexStats:
        """Return the number of stored chunks and embeddings."""
        with self._transaction("count vector store records") as conn:
            chunk_count = conn.execute("SELECT COUNT(*) FROM chunks").fetchone()[0]
            embedding_count = conn.execute("SELECT COUNT(*) FROM embeddings").fetchone()[0]
        return IndexStats(chunk_count=chunk_count, embedding_count=embedding_count)
