"""Shared fakes and fixtures for the docqa test suite."""
import asyncio
import math
import re
from typing import Any, Dict, List, Mapping, Sequence, Tuple

import pytest

from docqa.errors import CollectionNotFound, InvalidArgument
from docqa.models.chunk import Chunk, ScoredChunk
from docqa.models.document import Document
from docqa.services.chunking_engine import ChunkingEngine
from docqa.services.llm_client import LLMClient, LLMResponse
from docqa.services.rag_pipeline import RAGPipeline
from docqa.services.vector_store import CollectionOutcome

KERRY_TEXT = "Paragraph one.\n\nParagraph two about Kerry Walsh."


class FakeEmbeddingModel:
    """Bag-of-words embeddings over a vocabulary that grows as words are seen."""

    def __init__(self, dimension: int = 256):
        self.dimension = dimension
        self.vocabulary: Dict[str, int] = {}
        self.batch_calls: List[List[str]] = []
        self.text_calls: List[str] = []

    def vector(self, text: str) -> List[float]:
        values = [0.0] * self.dimension
        for word in re.findall(r"[a-z]+", text.lower()):
            index = self.vocabulary.setdefault(word, len(self.vocabulary))
            values[index % self.dimension] += 1.0
        return values

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        self.batch_calls.append(list(texts))
        return [self.vector(text) for text in texts]

    async def embed_text(self, text: str) -> List[float]:
        self.text_calls.append(text)
        # Yield like a network call so concurrent pipeline calls interleave
        await asyncio.sleep(0)
        return self.vector(text)


def cosine_distance(a: Sequence[float], b: Sequence[float]) -> float:
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(x * x for x in b))
    if norm_a == 0 or norm_b == 0:
        return 1.0
    return 1.0 - sum(x * y for x, y in zip(a, b)) / (norm_a * norm_b)


class InMemoryCollection:
    """VectorCollection that keeps records in a dict and ranks by cosine distance."""

    def __init__(self, name: str):
        self.name = name
        self.records: Dict[str, Tuple[List[float], str, Dict[str, Any]]] = {}
        self.add_calls = 0
        self.dropped = False

    async def count(self) -> int:
        return len(self.records)

    async def add(
        self,
        ids: Sequence[str],
        embeddings: Sequence[Sequence[float]],
        documents: Sequence[str],
        metadatas: Sequence[Mapping[str, Any]]
    ) -> None:
        self.add_calls += 1
        duplicates = [chunk_id for chunk_id in ids if chunk_id in self.records]
        if duplicates:
            raise ValueError(f"Duplicate ids: {duplicates}")
        for chunk_id, embedding, document, metadata in zip(ids, embeddings, documents, metadatas):
            self.records[chunk_id] = (list(embedding), document, dict(metadata))

    async def query(self, query_embedding: Sequence[float], k: int) -> List[ScoredChunk]:
        if k < 1:
            raise InvalidArgument(f"k must be at least 1, got {k}")
        if self.dropped:
            raise CollectionNotFound(self.name)
        scored = [
            ScoredChunk(
                chunk=Chunk.from_record(chunk_id, document, metadata),
                distance=cosine_distance(query_embedding, embedding)
            )
            for chunk_id, (embedding, document, metadata) in self.records.items()
        ]
        scored.sort(key=lambda item: item.distance)
        return scored[:k]


class InMemoryVectorStore:
    """Named InMemoryCollections with get-or-create and delete."""

    def __init__(self):
        self.collections: Dict[str, InMemoryCollection] = {}
        self.deleted: List[str] = []
        self.closed = False

    async def get_or_create(self, name: str, metric: str = "cosine"):
        if name in self.collections:
            return self.collections[name], CollectionOutcome.FOUND
        self.collections[name] = InMemoryCollection(name)
        return self.collections[name], CollectionOutcome.CREATED

    async def delete(self, name: str) -> None:
        if name not in self.collections:
            raise CollectionNotFound(name)
        self.collections.pop(name).dropped = True
        self.deleted.append(name)

    async def aclose(self) -> None:
        self.closed = True


class FakeLLMClient:
    """Records prompts and answers with a canned reply."""

    build_prompt = staticmethod(LLMClient.build_prompt)

    def __init__(self, reply: str = "Kerry Walsh is a professor."):
        self.reply = reply
        self.prompts: List[str] = []
        self.closed = False

    async def aclose(self) -> None:
        self.closed = True

    async def generate(self, prompt: str) -> LLMResponse:
        self.prompts.append(prompt)
        return LLMResponse(
            text=self.reply,
            tokens_input=len(prompt.split()),
            tokens_output=len(self.reply.split()),
            latency_ms=0,
            model_used="fake-model"
        )


@pytest.fixture
def kerry_document() -> Document:
    return Document(source="kerry.txt", text=KERRY_TEXT)


@pytest.fixture
def embedding_model() -> FakeEmbeddingModel:
    return FakeEmbeddingModel()


@pytest.fixture
def vector_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture
def llm_client() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def chunking_engine() -> ChunkingEngine:
    return ChunkingEngine(chunk_size=20, chunk_overlap=5)


@pytest.fixture
def pipeline(vector_store, embedding_model, llm_client, chunking_engine) -> RAGPipeline:
    return RAGPipeline(
        vector_store=vector_store,
        embedding_model=embedding_model,
        llm_client=llm_client,
        chunking_engine=chunking_engine,
        collection_name="test_docs",
        top_k=3,
        domain="Professor Kerry Walsh"
    )
