"""Chunk data models."""
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True)
class Chunk:
    """Represents a document chunk for retrieval."""
    chunk_id: str  # Format: "chunk_{chunk_index}"
    text: str
    source: str
    chunk_index: int
    start_offset: int = 0
    end_offset: int = 0

    def metadata(self) -> Dict[str, Any]:
        """Metadata stored alongside the chunk in the vector store."""
        return {
            "chunk_index": self.chunk_index,
            "source": self.source,
            "start_offset": self.start_offset,
            "end_offset": self.end_offset,
        }

    @classmethod
    def from_record(
        cls,
        chunk_id: str,
        text: str,
        metadata: Optional[Mapping[str, Any]] = None
    ) -> "Chunk":
        """Rebuild a chunk from a stored (id, document, metadata) record."""
        metadata = metadata or {}
        return cls(
            chunk_id=chunk_id,
            text=text,
            source=metadata.get("source", ""),
            chunk_index=int(metadata.get("chunk_index", -1)),
            start_offset=int(metadata.get("start_offset", 0)),
            end_offset=int(metadata.get("end_offset", 0)),
        )


@dataclass(frozen=True)
class ScoredChunk:
    """Chunk with its distance to the query from retrieval."""
    chunk: Chunk
    distance: float  # cosine distance, 0.0 is identical

    @property
    def relevance_score(self) -> float:
        """Similarity normalized to the 0.0 to 1.0 range."""
        return max(0.0, min(1.0, 1.0 - self.distance))
