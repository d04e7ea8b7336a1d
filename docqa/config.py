"""Configuration management for the docqa command-line tool."""
import os
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Optional

from dotenv import load_dotenv

from docqa.errors import InvalidConfiguration

# Load environment variables
load_dotenv()

# API Keys
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
HUGGINGFACE_API_KEY = os.getenv("HUGGINGFACE_API_KEY")

# Vector store connection
CHROMA_HOST = os.getenv("CHROMA_HOST", "localhost")
CHROMA_PORT = os.getenv("CHROMA_PORT", "8000")
CHROMA_SSL = os.getenv("CHROMA_SSL", "false")

# Model Configuration
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "sentence-transformers/all-mpnet-base-v2")
EMBEDDING_API_URL = os.getenv("EMBEDDING_API_URL")
LLM_MODEL = os.getenv("LLM_MODEL", "llama-3.3-70b-versatile")
LLM_MAX_TOKENS = os.getenv("LLM_MAX_TOKENS", "2048")
LLM_TEMPERATURE = os.getenv("LLM_TEMPERATURE", "0.7")

# Collection and document
COLLECTION_NAME = os.getenv("COLLECTION_NAME", "document_chunks")
DOCUMENT_PATH = os.getenv("DOCUMENT_PATH", "document.txt")
DOMAIN_NAME = os.getenv("DOMAIN_NAME", "the provided document")
RESET_TEST_QUESTION = os.getenv("RESET_TEST_QUESTION", "Who is Professor Kerry Walsh?")

# Chunking Configuration
CHUNK_SIZE = os.getenv("CHUNK_SIZE", "400")  # characters
CHUNK_OVERLAP = os.getenv("CHUNK_OVERLAP", "50")  # characters

# Retrieval Configuration
TOP_K = os.getenv("TOP_K", "3")

# Logging Configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")
LOG_FORMAT = os.getenv("LOG_FORMAT", "json")

DISTANCE_METRICS = ("cosine", "l2", "ip")


def _as_int(name: str, value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidConfiguration(f"{name} must be an integer, got {value!r}")


def _as_float(name: str, value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidConfiguration(f"{name} must be a number, got {value!r}")


def _as_bool(name: str, value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _env(name: str, default, convert: Optional[Callable[[str, Any], Any]] = None):
    """Field whose default is read from the environment when Settings is built."""
    def read():
        value = os.getenv(name, default)
        return convert(name, value) if convert else value
    return field(default_factory=read)


@dataclass
class Settings:
    """Every externally supplied value the pipeline needs."""
    groq_api_key: Optional[str] = _env("GROQ_API_KEY", GROQ_API_KEY)
    huggingface_api_key: Optional[str] = _env("HUGGINGFACE_API_KEY", HUGGINGFACE_API_KEY)
    chroma_host: str = _env("CHROMA_HOST", CHROMA_HOST)
    chroma_port: int = _env("CHROMA_PORT", CHROMA_PORT, _as_int)
    chroma_ssl: bool = _env("CHROMA_SSL", CHROMA_SSL, _as_bool)
    embedding_model: str = _env("EMBEDDING_MODEL", EMBEDDING_MODEL)
    embedding_api_url: Optional[str] = _env("EMBEDDING_API_URL", EMBEDDING_API_URL)
    llm_model: str = _env("LLM_MODEL", LLM_MODEL)
    llm_max_tokens: int = _env("LLM_MAX_TOKENS", LLM_MAX_TOKENS, _as_int)
    llm_temperature: float = _env("LLM_TEMPERATURE", LLM_TEMPERATURE, _as_float)
    collection_name: str = _env("COLLECTION_NAME", COLLECTION_NAME)
    document_path: str = _env("DOCUMENT_PATH", DOCUMENT_PATH)
    domain_name: str = _env("DOMAIN_NAME", DOMAIN_NAME)
    reset_test_question: str = _env("RESET_TEST_QUESTION", RESET_TEST_QUESTION)
    chunk_size: int = _env("CHUNK_SIZE", CHUNK_SIZE, _as_int)
    chunk_overlap: int = _env("CHUNK_OVERLAP", CHUNK_OVERLAP, _as_int)
    top_k: int = _env("TOP_K", TOP_K, _as_int)

    @classmethod
    def from_env(cls, **overrides) -> "Settings":
        """
        Build settings from the environment, applying any overrides.

        Args:
            **overrides: Field values that take precedence over the environment

        Returns:
            Validated Settings instance

        Raises:
            InvalidConfiguration: If a value is malformed
        """
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in overrides.items():
            if key not in known:
                raise InvalidConfiguration(f"Unknown setting: {key}")
            if value is not None:
                values[key] = value

        settings = cls(**values)
        settings.validate()
        return settings

    def validate(self) -> None:
        """Raise InvalidConfiguration if any value is out of range."""
        if not self.chroma_host:
            raise InvalidConfiguration("CHROMA_HOST cannot be empty")
        if not 0 < self.chroma_port < 65536:
            raise InvalidConfiguration(f"CHROMA_PORT out of range: {self.chroma_port}")
        if not 0 < self.chunk_overlap < self.chunk_size:
            raise InvalidConfiguration(
                f"Chunk overlap must satisfy 0 < overlap < size "
                f"(size={self.chunk_size}, overlap={self.chunk_overlap})"
            )
        if self.top_k < 1:
            raise InvalidConfiguration(f"TOP_K must be at least 1, got {self.top_k}")
        if self.llm_max_tokens < 1:
            raise InvalidConfiguration(f"LLM_MAX_TOKENS must be positive, got {self.llm_max_tokens}")
        if not self.collection_name:
            raise InvalidConfiguration("COLLECTION_NAME cannot be empty")
