"""Retrieval-augmented question answering over a single text document."""

__version__ = "0.1.0"
