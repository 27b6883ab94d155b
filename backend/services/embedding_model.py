"""Embedding client for an Ollama-compatible embedding backend."""
import time
import logging
from typing import List, Optional
import httpx
from config import (
    OLLAMA_BASE_URL,
    EMBEDDING_MODEL,
    EMBEDDING_TIMEOUT,
    EMBEDDING_MAX_RETRIES,
    EMBEDDING_INITIAL_DELAY,
)

logger = logging.getLogger(__name__)


class EmbeddingBackendError(Exception):
    """The embedding backend is unreachable or returned a non-success response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class EmbeddingModel:
    """Wrapper for an Ollama embedding endpoint."""

    def __init__(
        self,
        base_url: str = OLLAMA_BASE_URL,
        model_name: str = EMBEDDING_MODEL,
        max_retries: int = EMBEDDING_MAX_RETRIES,
        initial_delay: float = EMBEDDING_INITIAL_DELAY,
        timeout: float = EMBEDDING_TIMEOUT
    ):
        """
        Initialize the embedding model client.

        Args:
            base_url: Base URL of the embedding backend
            model_name: Model identifier (default: nomic-embed-text)
            max_retries: Maximum number of attempts for timeouts, network errors and 503s
            initial_delay: Initial delay in seconds for exponential backoff
            timeout: Request timeout in seconds
        """
        if not base_url:
            raise ValueError("OLLAMA_BASE_URL must not be empty")
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")

        self.base_url = base_url.rstrip("/")
        self.model_name = model_name
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.timeout = timeout
        self.api_url = f"{self.base_url}/api/embeddings"
        # Newer Ollama releases only expose the batch-style endpoint
        self.fallback_url = f"{self.base_url}/api/embed"

        logger.info(f"Initialized EmbeddingModel with model: {model_name}")

    def embed_text(self, text: str) -> List[float]:
        """
        Generate embedding for a single text string.

        Args:
            text: Text to embed

        Returns:
            Embedding vector as list of floats

        Raises:
            ValueError: If text is empty
            EmbeddingBackendError: If the backend request fails
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        return self._embed_with_retry(text)

    def embed_batch(self, texts: List[str], delay: float = 0.0) -> List[List[float]]:
        """
        Generate embeddings for several texts, one request per text.

        Args:
            texts: List of texts to embed
            delay: Pause in seconds between consecutive requests

        Returns:
            List of embedding vectors in input order

        Raises:
            ValueError: If texts list is empty or contains empty strings
            EmbeddingBackendError: If any backend request fails
        """
        if not texts:
            raise ValueError("Texts list cannot be empty")

        embeddings = []
        for i, text in enumerate(texts):
            if i > 0 and delay > 0:
                time.sleep(delay)
            embeddings.append(self.embed_text(text))
        return embeddings

    def _embed_with_retry(self, text: str) -> List[float]:
        """
        Call the backend with exponential backoff for transient failures.

        Ollama answers 503 while a model is being loaded, so 503s are retried
        together with timeouts and network errors.

        Args:
            text: Text to embed

        Returns:
            Embedding vector

        Raises:
            EmbeddingBackendError: If the request fails or all retries are exhausted
        """
        delay = self.initial_delay
        last_error = None
        last_status = None

        for attempt in range(self.max_retries):
            try:
                start_time = time.time()

                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(
                        self.api_url,
                        json={"model": self.model_name, "prompt": text}
                    )
                    use_fallback = response.status_code == 404
                    if use_fallback:
                        logger.debug(f"{self.api_url} not found, retrying with {self.fallback_url}")
                        response = client.post(
                            self.fallback_url,
                            json={"model": self.model_name, "input": text}
                        )

                elapsed = time.time() - start_time

                # Handle 503 Service Unavailable (model loading)
                if response.status_code == 503:
                    last_status = 503
                    last_error = "Embedding model is loading"
                    logger.warning(
                        f"Model loading (503) on attempt {attempt + 1}/{self.max_retries}. "
                        f"Retrying in {delay}s..."
                    )
                    if attempt < self.max_retries - 1:
                        time.sleep(delay)
                        delay = min(delay * 2, 60.0)  # Exponential backoff, max 60s
                        continue
                    break

                if response.status_code != 200:
                    error_msg = f"Embedding API error {response.status_code}: {response.text}"
                    logger.error(error_msg)
                    raise EmbeddingBackendError(error_msg, status_code=response.status_code)

                embedding = self._parse_embedding(response, use_fallback)

                logger.debug(f"Generated {len(embedding)}-dim embedding in {elapsed:.2f}s")
                return embedding

            except httpx.TimeoutException:
                last_error = f"Request timeout after {self.timeout}s"
                logger.error(f"{last_error} on attempt {attempt + 1}/{self.max_retries}")

            except httpx.RequestError as e:
                last_error = f"Network error: {str(e)}"
                logger.error(f"{last_error} on attempt {attempt + 1}/{self.max_retries}")

            if attempt < self.max_retries - 1:
                time.sleep(delay)
                delay = min(delay * 2, 60.0)

        # All retries exhausted
        error_msg = f"Failed to generate embedding after {self.max_retries} attempts. Last error: {last_error}"
        logger.error(error_msg)
        raise EmbeddingBackendError(error_msg, status_code=last_status)

    @staticmethod
    def _parse_embedding(response: httpx.Response, batch_format: bool) -> List[float]:
        """Extract the vector from a /api/embeddings or /api/embed response."""
        try:
            data = response.json()
        except ValueError as e:
            raise EmbeddingBackendError(f"Invalid JSON from embedding API: {e}", status_code=response.status_code) from e

        if not isinstance(data, dict):
            raise EmbeddingBackendError("Unexpected response shape from embedding API", status_code=response.status_code)

        if batch_format:
            embeddings = data.get("embeddings") or []
            embedding = embeddings[0] if isinstance(embeddings, list) and embeddings else embeddings
        else:
            embedding = data.get("embedding")

        if not embedding:
            raise EmbeddingBackendError("Embedding API returned no vector", status_code=response.status_code)

        try:
            if not isinstance(embedding, list):
                raise TypeError(f"expected a list, got {type(embedding).__name__}")
            return [float(x) for x in embedding]
        except (TypeError, ValueError) as e:
            raise EmbeddingBackendError(
                f"Malformed vector from embedding API: {e}", status_code=response.status_code
            ) from e

    def warmup(self) -> bool:
        """
        Warm up the model with a dummy query to avoid cold start delays.

        Returns:
            True if warmup successful, False otherwise
        """
        try:
            logger.info("Warming up embedding model...")
            start_time = time.time()

            self.embed_text("warmup query")

            elapsed = time.time() - start_time
            logger.info(f"Model warmup completed in {elapsed:.1f}s")
            return True

        except EmbeddingBackendError as e:
            logger.error(f"Model warmup failed: {str(e)}")
            return False
