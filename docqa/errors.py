"""Exception hierarchy for the docqa pipeline."""
from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class ServiceError:
    """Structured error information from an external service call."""
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)


class RAGError(Exception):
    """Base class for all docqa errors."""


class InvalidConfiguration(RAGError):
    """Malformed chunking, connection or settings values."""


class InvalidArgument(RAGError):
    """A pipeline operation was called with an unusable argument."""


class CollectionNotFound(RAGError):
    """The named collection does not exist in the vector store."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Collection not found: {name}")


class CollectionRaceError(RAGError):
    """Another client created the collection between our lookup and create."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Collection {name} was created concurrently")


class _ServiceCallError(RAGError):
    def __init__(self, error: ServiceError):
        self.error = error
        super().__init__(error.message)


class EmbeddingServiceError(_ServiceCallError):
    """Embedding request failed (network, auth, quota or contract violation)."""


class LLMServiceError(_ServiceCallError):
    """Language model generation failed."""
