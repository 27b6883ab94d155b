"""Services for the local document search engine."""
from .chunking_engine import ChunkingEngine, split_into_chunks
from .embedding_model import EmbeddingModel, EmbeddingBackendError
from .vector_store import VectorStore, StorageError, cosine_similarity
from .text_extractor import TextExtractor, DocumentTextExtractor, ExtractionError
from .document_loader import DocumentLoader
from .document_indexer import DocumentIndexer
from .retrieval_engine import RetrievalEngine

__all__ = ['ChunkingEngine', 'split_into_chunks', 'EmbeddingModel', 'EmbeddingBackendError', 'VectorStore', 'StorageError', 'cosine_similarity', 'TextExtractor', 'DocumentTextExtractor', 'ExtractionError', 'DocumentLoader', 'DocumentIndexer', 'RetrievalEngine']
