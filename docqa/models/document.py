"""Document data models."""
from dataclasses import dataclass


@dataclass(frozen=True)
class Document:
    """Represents a loaded plain-text document."""
    source: str  # logical source identifier, usually the file name
    text: str
