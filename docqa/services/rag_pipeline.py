"""RAG pipeline orchestrating ingestion, retrieval and answer generation."""
import asyncio
import logging
from collections import defaultdict
from typing import Dict, List, Optional

from docqa.errors import CollectionNotFound, InvalidArgument
from docqa.models.chunk import ScoredChunk
from docqa.models.document import Document
from docqa.services.chunking_engine import ChunkingEngine
from docqa.services.document_loader import DocumentLoader
from docqa.services.embedding_model import EmbeddingModel
from docqa.services.llm_client import LLMClient
from docqa.services.vector_store import VectorCollection, VectorStore

logger = logging.getLogger(__name__)


class RAGPipeline:
    """Sequence chunking, embedding, storage, retrieval and generation."""

    def __init__(
        self,
        vector_store: VectorStore,
        embedding_model: EmbeddingModel,
        llm_client: LLMClient,
        chunking_engine: ChunkingEngine,
        collection_name: str = "document_chunks",
        top_k: int = 3,
        domain: str = "the provided document",
        document_loader: Optional[DocumentLoader] = None
    ):
        """
        Initialize the pipeline with its collaborators.

        Args:
            vector_store: Store holding the named collections
            embedding_model: Embedding client for chunks and queries
            llm_client: Language model client
            chunking_engine: Splitter for incoming documents
            collection_name: Default collection name
            top_k: Default number of chunks retrieved per question
            domain: Subject of the document, used in the prompt framing
            document_loader: Reader for document files
        """
        if top_k < 1:
            raise InvalidArgument(f"top_k must be at least 1, got {top_k}")

        self.vector_store = vector_store
        self.embedding_model = embedding_model
        self.llm_client = llm_client
        self.chunking_engine = chunking_engine
        self.collection_name = collection_name
        self.top_k = top_k
        self.domain = domain
        self.document_loader = document_loader or DocumentLoader()

        # Serializes collection setup and population per collection name
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

        logger.info(f"Initialized RAGPipeline for collection {collection_name}")

    async def aclose(self) -> None:
        """Close the vector store and language model clients."""
        try:
            await self.vector_store.aclose()
        finally:
            await self.llm_client.aclose()

    async def ensure_collection(
        self,
        name: Optional[str] = None,
        metric: str = "cosine"
    ) -> VectorCollection:
        """
        Get or create the collection.

        Args:
            name: Collection name (defaults to the configured one)
            metric: Similarity metric for a newly created collection

        Returns:
            The collection handle
        """
        name = name or self.collection_name
        collection, outcome = await self.vector_store.get_or_create(name, metric)
        logger.debug(f"Collection {name} ready ({outcome.value})")
        return collection

    async def ingest(self, document: Document, collection: VectorCollection) -> int:
        """
        Chunk, embed and store a document, unless the collection already has records.

        Ingestion is all-or-nothing: nothing is written until every chunk
        has an embedding, and all records go out in one add call.

        Args:
            document: Document to ingest
            collection: Target collection

        Returns:
            Number of records written, 0 when skipped
        """
        existing = await collection.count()
        if existing > 0:
            logger.info(f"Document already embedded ({existing} chunks). Skipping.")
            return 0

        logger.info("Splitting into chunks...")
        chunks = self.chunking_engine.chunk_document(document)
        if not chunks:
            logger.warning(f"Document {document.source} produced no chunks, nothing to store")
            return 0

        logger.info(f"Generating embeddings for {len(chunks)} chunks...")
        embeddings = await self.embedding_model.embed_batch([chunk.text for chunk in chunks])

        logger.info(f"Storing {len(chunks)} chunks in {collection.name}...")
        await collection.add(
            ids=[chunk.chunk_id for chunk in chunks],
            embeddings=embeddings,
            documents=[chunk.text for chunk in chunks],
            metadatas=[chunk.metadata() for chunk in chunks]
        )

        logger.info(f"Document {document.source} embedded successfully")
        return len(chunks)

    async def retrieve(
        self,
        query: str,
        collection: VectorCollection,
        top_k: Optional[int] = None
    ) -> List[ScoredChunk]:
        """
        Retrieve the chunks closest to the query.

        Args:
            query: User question
            collection: Collection to search
            top_k: Maximum number of chunks (defaults to the configured one)

        Returns:
            Scored chunks, most similar first; empty for an empty collection

        Raises:
            InvalidArgument: If top_k is less than 1 or the query is blank
        """
        top_k = self.top_k if top_k is None else top_k
        if top_k < 1:
            raise InvalidArgument(f"top_k must be at least 1, got {top_k}")
        if not query or not query.strip():
            raise InvalidArgument("Query cannot be empty")

        logger.info(f"Searching for: {query[:100]}")
        query_embedding = await self.embedding_model.embed_text(query)
        scored_chunks = await collection.query(query_embedding, top_k)

        logger.info(
            f"Found {len(scored_chunks)} relevant chunks",
            extra={"relevance_scores": [round(scored.relevance_score, 3) for scored in scored_chunks]}
        )
        return scored_chunks

    async def answer(
        self,
        query: str,
        collection: VectorCollection,
        top_k: Optional[int] = None
    ) -> str:
        """
        Answer a question from the collection's content.

        Args:
            query: User question
            collection: Collection to search
            top_k: Maximum number of context chunks

        Returns:
            The model's answer, verbatim
        """
        scored_chunks = await self.retrieve(query, collection, top_k)
        return await self._generate(query, scored_chunks)

    async def _generate(self, query: str, scored_chunks: List[ScoredChunk]) -> str:
        prompt = self.llm_client.build_prompt(
            query,
            [scored.chunk.text for scored in scored_chunks],
            domain=self.domain
        )

        logger.info("Generating response...")
        response = await self.llm_client.generate(prompt)
        return response.text

    async def run(
        self,
        question: str,
        document_path: str,
        top_k: Optional[int] = None
    ) -> str:
        """
        Make sure the document is embedded, then answer the question.

        The document file is only read when the collection is empty.
        Retrieval happens under the collection lock, so a concurrent reset
        cannot delete the collection between setup and search; only the
        model call runs outside it.

        Args:
            question: User question
            document_path: Path of the document backing the collection
            top_k: Maximum number of context chunks

        Returns:
            The model's answer
        """
        async with self._locks[self.collection_name]:
            collection = await self.ensure_collection()
            if await collection.count() == 0:
                document = self.document_loader.load(document_path)
                await self.ingest(document, collection)
            scored_chunks = await self.retrieve(question, collection, top_k)

        return await self._generate(question, scored_chunks)

    async def reset(
        self,
        document_path: str,
        question: str,
        top_k: Optional[int] = None
    ) -> str:
        """
        Drop the collection, re-ingest the document and answer a question.

        Args:
            document_path: Path of the (updated) document
            question: Question used to check the new content
            top_k: Maximum number of context chunks

        Returns:
            The model's answer to the question
        """
        name = self.collection_name
        document = self.document_loader.load(document_path)

        async with self._locks[name]:
            logger.info(f"Deleting collection {name}...")
            try:
                await self.vector_store.delete(name)
            except CollectionNotFound:
                logger.info(f"No existing collection {name} to delete")

            collection = await self.ensure_collection()
            await self.ingest(document, collection)
            scored_chunks = await self.retrieve(question, collection, top_k)

        return await self._generate(question, scored_chunks)
