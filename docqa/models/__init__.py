"""Data models for docqa."""
from .document import Document
from .chunk import Chunk, ScoredChunk

__all__ = [
    "Document",
    "Chunk",
    "ScoredChunk",
]
