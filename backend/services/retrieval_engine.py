"""Retrieval engine for query embedding, chunk retrieval and context formatting."""
import logging
from typing import List, Optional, Tuple
from models.chunk import SearchResult
from services.vector_store import VectorStore
from services.embedding_model import EmbeddingModel
from config import DEFAULT_TOP_K, MIN_SIMILARITY

logger = logging.getLogger(__name__)

CONTEXT_HEADER = (
    "The following are excerpts from related documents retrieved by vector search. "
    "Review them carefully and cite the matching reference number in your answer."
)


class RetrievalEngine:
    """Orchestrate query embedding and chunk retrieval."""

    def __init__(
        self,
        vector_store: VectorStore,
        embedding_model: EmbeddingModel,
        min_similarity: float = MIN_SIMILARITY
    ):
        """
        Initialize the retrieval engine.

        Args:
            vector_store: VectorStore instance for similarity search
            embedding_model: EmbeddingModel instance for query embedding
            min_similarity: Drop results below this similarity; 0 or less disables the filter
        """
        self.vector_store = vector_store
        self.embedding_model = embedding_model
        self.min_similarity = min_similarity
        logger.info("Initialized RetrievalEngine")

    def search(self, query: str, top_k: int = DEFAULT_TOP_K) -> List[SearchResult]:
        """
        Retrieve the chunks most similar to a natural-language query.

        1. Return nothing for an empty query
        2. Return nothing when the store holds no embeddings, without
           calling the embedding backend
        3. Embed the query and run the similarity search

        Args:
            query: User question
            top_k: Maximum number of chunks to retrieve (default: 5)

        Returns:
            List of SearchResult ordered by similarity, empty if no results or empty query

        Raises:
            EmbeddingBackendError: If the query cannot be embedded
            StorageError: If the vector store fails
        """
        # Handle empty query strings gracefully
        if not query or not query.strip():
            logger.warning("Empty query string provided, returning empty results")
            return []

        if self.vector_store.stats().embedding_count == 0:
            logger.info("Index is empty, skipping query embedding")
            return []

        logger.debug(f"Embedding query: {query[:100]}...")
        query_embedding = self.embedding_model.embed_text(query)

        logger.debug(f"Searching for top {top_k} chunks")
        results = self.vector_store.search_similar(query_embedding, top_k=top_k)

        if self.min_similarity > 0:
            results = [r for r in results if r.similarity >= self.min_similarity]

        if results:
            logger.info(f"Retrieved {len(results)} chunks (top score: {results[0].similarity:.3f})")
        else:
            logger.info("No chunks found for query")
        return results

    @staticmethod
    def format_context(results: List[SearchResult]) -> Optional[str]:
        """
        Render search results as a numbered context block for a completion backend.

        Args:
            results: Ranked search results

        Returns:
            Formatted context, or None when there are no results
        """
        if not results:
            return None

        sections = []
        for index, result in enumerate(results, start=1):
            sections.append(
                f"## Reference {index}: {result.chunk.source_name}\n"
                f"Relevance: {result.similarity * 100:.1f}%\n"
                f"File path: {result.chunk.source_path}\n"
                f"\n"
                f"Excerpt:\n"
                f"{result.relevant_text}\n"
                f"\n"
                f"---"
            )

        return f"{CONTEXT_HEADER}\n\n" + "\n\n".join(sections)

    def build_context(self, query: str, top_k: int = DEFAULT_TOP_K) -> Tuple[List[SearchResult], Optional[str]]:
        """Search and format in one step."""
        results = self.search(query, top_k=top_k)
        return results, self.format_context(results)
