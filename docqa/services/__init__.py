"""Services for docqa."""
from .document_loader import DocumentLoader
from .chunking_engine import ChunkingEngine
from .embedding_model import EmbeddingModel
from .vector_store import VectorStore, VectorCollection, ChromaCollection, CollectionOutcome
from .llm_client import LLMClient, LLMResponse
from .rag_pipeline import RAGPipeline

__all__ = ['DocumentLoader', 'ChunkingEngine', 'EmbeddingModel', 'VectorStore', 'VectorCollection', 'ChromaCollection', 'CollectionOutcome', 'LLMClient', 'LLMResponse', 'RAGPipeline']
