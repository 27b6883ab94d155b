"""Configuration management for the local document search engine."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Embedding Backend Configuration
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "nomic-embed-text")
EMBEDDING_TIMEOUT = float(os.getenv("EMBEDDING_TIMEOUT", "60"))
EMBEDDING_MAX_RETRIES = int(os.getenv("EMBEDDING_MAX_RETRIES", "3"))
EMBEDDING_INITIAL_DELAY = float(os.getenv("EMBEDDING_INITIAL_DELAY", "1.0"))
EMBEDDING_DELAY = float(os.getenv("EMBEDDING_DELAY", "0.1"))  # seconds between bulk calls

# Storage Configuration
VECTOR_DB_PATH = os.getenv("VECTOR_DB_PATH", "data/vector_store.db")

# Chunking Configuration
MAX_CHUNK_SIZE = int(os.getenv("MAX_CHUNK_SIZE", "500"))  # characters
MIN_CONTENT_LENGTH = int(os.getenv("MIN_CONTENT_LENGTH", "10"))  # characters
EXTRACTION_TEXT_LIMIT = int(os.getenv("EXTRACTION_TEXT_LIMIT", "20000"))

# Retrieval Configuration
DEFAULT_TOP_K = int(os.getenv("DEFAULT_TOP_K", "5"))
MIN_SIMILARITY = float(os.getenv("MIN_SIMILARITY", "0.0"))  # 0 disables the filter

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:3001"
).split(",")
