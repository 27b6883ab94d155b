"""Main entry point for the local document search API."""
import logging
import threading
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from config import PORT, LOG_LEVEL, LOG_FORMAT, CORS_ORIGINS, VECTOR_DB_PATH, MAX_CHUNK_SIZE
from logger import setup_logging
from models.api import (
    SearchRequest,
    SearchResponse,
    SearchHit,
    IndexDirectoryRequest,
    IndexFilesRequest,
    IndexReportResponse,
    ProgressResponse,
    StatsResponse,
)
from models.indexing import IndexingProgress
from services.chunking_engine import ChunkingEngine
from services.document_indexer import DocumentIndexer
from services.embedding_model import EmbeddingModel, EmbeddingBackendError
from services.retrieval_engine import RetrievalEngine
from services.vector_store import VectorStore, StorageError

# Initialize logging
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Local Document Search",
    description="Indexes local files and retrieves grounding context for a chat assistant",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services (will be done on startup)
vector_store: VectorStore = None
document_indexer: DocumentIndexer = None
retrieval_engine: RetrievalEngine = None
latest_progress: Optional[IndexingProgress] = None

# One writer pipeline (indexing or clearing) at a time
writer_lock = threading.Lock()


def record_progress(progress: IndexingProgress) -> None:
    """Progress listener that keeps the latest update for GET /index/progress."""
    global latest_progress
    latest_progress = progress


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global vector_store, document_indexer, retrieval_engine

    setup_logging(LOG_LEVEL, LOG_FORMAT)
    logger.info("Initializing document search services...")

    try:
        vector_store = VectorStore(VECTOR_DB_PATH).open()
        embedding_model = EmbeddingModel()

        document_indexer = DocumentIndexer(
            vector_store,
            embedding_model,
            chunking_engine=ChunkingEngine(MAX_CHUNK_SIZE)
        )
        document_indexer.add_progress_listener(record_progress)
        logger.info("Initialized DocumentIndexer")

        retrieval_engine = RetrievalEngine(vector_store, embedding_model)

        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


@app.on_event("shutdown")
async def shutdown_event():
    """Close the vector store on shutdown."""
    if vector_store is not None:
        vector_store.close()


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Local Document Search API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "local-document-search",
        "version": "1.0.0",
        "store_open": bool(vector_store is not None and vector_store.is_open)
    }


@app.post("/search", response_model=SearchResponse)
def search_endpoint(request: SearchRequest) -> SearchResponse:
    """
    Retrieve the chunks most similar to a query and render them as context.

    Args:
        request: SearchRequest with query and top_k

    Returns:
        SearchResponse with ranked hits and the formatted context block

    Raises:
        HTTPException: 503 if the query cannot be embedded, 500 on storage failure
    """
    try:
        results = retrieval_engine.search(request.query, top_k=request.top_k)
    except EmbeddingBackendError as e:
        logger.error(f"Embedding backend error: {e.message}")
        raise HTTPException(
            status_code=503,
            detail={
                "error": {
                    "code": "EMBEDDING_BACKEND_ERROR",
                    "message": e.message,
                    "status_code": e.status_code
                }
            }
        )
    except StorageError as e:
        logger.error(f"Storage error during search: {e}")
        raise HTTPException(status_code=500, detail=f"Storage error: {str(e)}")

    hits = [
        SearchHit(
            chunk_id=result.chunk.id,
            content=result.relevant_text,
            source_name=result.chunk.source_name,
            source_path=result.chunk.source_path,
            source_type=result.chunk.source_type,
            chunk_index=result.chunk.chunk_index,
            total_chunks=result.chunk.total_chunks,
            similarity=result.similarity
        )
        for result in results
    ]
    return SearchResponse(results=hits, context=RetrievalEngine.format_context(results))


def _run_exclusive(action, *args):
    """Run a writer operation, refusing to start while another one is active."""
    if not writer_lock.acquire(blocking=False):
        raise HTTPException(status_code=409, detail="Another indexing operation is in progress")
    try:
        return action(*args)
    except NotADirectoryError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StorageError as e:
        logger.error(f"Storage error during indexing: {e}")
        raise HTTPException(status_code=500, detail=f"Storage error: {str(e)}")
    finally:
        writer_lock.release()


@app.post("/index/directory", response_model=IndexReportResponse)
def index_directory_endpoint(request: IndexDirectoryRequest) -> IndexReportResponse:
    """Index every eligible file under a directory; a null path is a cancelled no-op."""
    if request.path is not None and not Path(request.path).is_dir():
        raise HTTPException(status_code=404, detail=f"Directory not found: {request.path}")

    report = _run_exclusive(document_indexer.index_directory, request.path)
    return IndexReportResponse(**report.to_dict())


@app.post("/index/files", response_model=IndexReportResponse)
def index_files_endpoint(request: IndexFilesRequest) -> IndexReportResponse:
    """Index an explicit list of files."""
    report = _run_exclusive(document_indexer.index_files, request.paths)
    return IndexReportResponse(**report.to_dict())


@app.get("/index/progress", response_model=ProgressResponse)
async def progress_endpoint() -> ProgressResponse:
    """Latest progress of the current or last indexing run."""
    if latest_progress is None:
        return ProgressResponse()
    return ProgressResponse(**latest_progress.to_dict())


@app.get("/index/stats", response_model=StatsResponse)
def stats_endpoint() -> StatsResponse:
    try:
        stats = document_indexer.stats()
    except StorageError as e:
        raise HTTPException(status_code=500, detail=f"Storage error: {str(e)}")
    return StatsResponse(chunk_count=stats.chunk_count, embedding_count=stats.embedding_count)


@app.delete("/index", response_model=StatsResponse)
def clear_index_endpoint() -> StatsResponse:
    """Remove every chunk and embedding."""
    _run_exclusive(document_indexer.clear_index)
    logger.info("Index cleared")
    return StatsResponse(chunk_count=0, embedding_count=0)


if __name__ == "__main__":
    import uvicorn
    setup_logging(LOG_LEVEL, LOG_FORMAT)
    logger.info(f"Starting Local Document Search API on port {PORT}")
    uvicorn.run(app, host="127.0.0.1", port=PORT)
