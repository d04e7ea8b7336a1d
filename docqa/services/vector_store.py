"""Vector store implementation using a ChromaDB server."""
import asyncio
import enum
import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

import chromadb
from chromadb.errors import ChromaError, NotFoundError

from docqa.config import DISTANCE_METRICS
from docqa.errors import CollectionNotFound, CollectionRaceError, InvalidArgument, InvalidConfiguration
from docqa.models.chunk import Chunk, ScoredChunk

logger = logging.getLogger(__name__)


class CollectionOutcome(enum.Enum):
    """How get_or_create obtained its collection."""
    FOUND = "found"
    CREATED = "created"
    RACED = "raced"  # another client created it between our lookup and create


class VectorCollection(Protocol):
    """The part of a collection the pipeline depends on."""

    name: str

    async def count(self) -> int:
        ...

    async def add(
        self,
        ids: Sequence[str],
        embeddings: Sequence[Sequence[float]],
        documents: Sequence[str],
        metadatas: Sequence[Mapping[str, Any]]
    ) -> None:
        ...

    async def query(self, query_embedding: Sequence[float], k: int) -> List[ScoredChunk]:
        ...


class ChromaCollection:
    """VectorCollection adapter over a chromadb async collection."""

    def __init__(self, collection):
        self._collection = collection
        self.name = collection.name

    async def count(self) -> int:
        return await self._collection.count()

    async def add(
        self,
        ids: Sequence[str],
        embeddings: Sequence[Sequence[float]],
        documents: Sequence[str],
        metadatas: Sequence[Mapping[str, Any]]
    ) -> None:
        """
        Write one batch of records.

        Args:
            ids: Record ids
            embeddings: One vector per record
            documents: Chunk text per record
            metadatas: Metadata per record

        Raises:
            InvalidArgument: If the batch is empty or the sequences differ in length
        """
        if not ids:
            raise InvalidArgument("Cannot add an empty batch")
        if not len(ids) == len(embeddings) == len(documents) == len(metadatas):
            raise InvalidArgument(
                f"Batch length mismatch: ids={len(ids)}, embeddings={len(embeddings)}, "
                f"documents={len(documents)}, metadatas={len(metadatas)}"
            )

        await self._collection.add(
            ids=list(ids),
            embeddings=[list(vector) for vector in embeddings],
            documents=list(documents),
            metadatas=[dict(metadata) for metadata in metadatas],
        )
        logger.info(f"Added {len(ids)} records to collection {self.name}")

    async def query(self, query_embedding: Sequence[float], k: int) -> List[ScoredChunk]:
        """
        Find the k nearest chunks to the query embedding.

        Args:
            query_embedding: Embedding vector for the query
            k: Number of chunks to retrieve

        Returns:
            Scored chunks ordered closest first; empty if the collection is empty

        Raises:
            InvalidArgument: If k is less than 1 or the embedding is empty
        """
        if k < 1:
            raise InvalidArgument(f"k must be at least 1, got {k}")
        if not query_embedding:
            raise InvalidArgument("Query embedding cannot be empty")

        available = await self._collection.count()
        if available == 0:
            logger.info(f"Collection {self.name} is empty, no chunks to return")
            return []

        results = await self._collection.query(
            query_embeddings=[list(query_embedding)],
            n_results=min(k, available),
            include=["documents", "distances", "metadatas"],
        )

        ids = results["ids"][0]
        documents = results["documents"][0]
        distances = results["distances"][0]
        metadatas = (results.get("metadatas") or [[None] * len(ids)])[0]

        scored_chunks = [
            ScoredChunk(chunk=Chunk.from_record(chunk_id, text, metadata), distance=float(distance))
            for chunk_id, text, distance, metadata in zip(ids, documents, distances, metadatas)
        ]

        logger.debug(f"Found {len(scored_chunks)} chunks in {self.name}")
        return scored_chunks


class VectorStore:
    """Named collections on a ChromaDB server, reached over HTTP."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8000,
        ssl: bool = False,
        headers: Optional[Dict[str, str]] = None,
        client_factory: Optional[Callable[..., Awaitable[Any]]] = None
    ):
        """
        Initialize the vector store connection settings.

        The connection itself is opened on first use.

        Args:
            host: ChromaDB server host
            port: ChromaDB server port
            ssl: Use HTTPS
            headers: Extra HTTP headers, e.g. for auth
            client_factory: Coroutine function returning an async client;
                defaults to chromadb.AsyncHttpClient

        Raises:
            InvalidConfiguration: If host or port are malformed
        """
        if not host:
            raise InvalidConfiguration("Vector store host cannot be empty")
        if not isinstance(port, int) or not 0 < port < 65536:
            raise InvalidConfiguration(f"Vector store port out of range: {port!r}")

        self.host = host
        self.port = port
        self.ssl = ssl
        self.headers = headers
        self._client_factory = client_factory or chromadb.AsyncHttpClient
        self._client = None
        self._client_lock = asyncio.Lock()

        logger.info(f"Initialized VectorStore for {host}:{port}")

    async def _get_client(self):
        async with self._client_lock:
            if self._client is None:
                self._client = await self._client_factory(
                    host=self.host, port=self.port, ssl=self.ssl, headers=self.headers
                )
        return self._client

    async def aclose(self) -> None:
        """
        Release the server client; the next call opens a new one.

        chromadb's async client exposes no public close; its HTTP pools are
        kept per event loop inside chromadb.
        """
        async with self._client_lock:
            if self._client is not None:
                self._client = None
                logger.debug(f"Released VectorStore client for {self.host}:{self.port}")

    async def get(self, name: str) -> ChromaCollection:
        """
        Fetch an existing collection.

        Raises:
            CollectionNotFound: If no collection has this name
        """
        client = await self._get_client()
        try:
            collection = await client.get_collection(name=name)
        except NotFoundError as e:
            raise CollectionNotFound(name) from e
        return ChromaCollection(collection)

    async def _create(self, name: str, metric: str) -> ChromaCollection:
        client = await self._get_client()
        try:
            collection = await client.create_collection(name=name, metadata={"hnsw:space": metric})
        except ChromaError as e:
            # The server answers a duplicate create with 409, raised as a plain ChromaError
            raise CollectionRaceError(name) from e
        return ChromaCollection(collection)

    async def get_or_create(
        self,
        name: str,
        metric: str = "cosine"
    ) -> Tuple[ChromaCollection, CollectionOutcome]:
        """
        Fetch a collection, creating it with the given metric if absent.

        A concurrent creator winning the race is not an error: the
        collection it created is fetched and returned.

        Args:
            name: Collection name
            metric: Similarity metric, one of cosine, l2, ip

        Returns:
            The collection and how it was obtained

        Raises:
            InvalidConfiguration: If the metric is not supported
            ChromaError: If create failed and the collection still does not exist
        """
        if metric not in DISTANCE_METRICS:
            raise InvalidConfiguration(f"Unsupported distance metric: {metric}")

        try:
            collection = await self.get(name)
            logger.info(f"Found existing collection {name}")
            return collection, CollectionOutcome.FOUND
        except CollectionNotFound:
            pass

        try:
            collection = await self._create(name, metric)
            logger.info(f"Created new collection {name} ({metric})")
            return collection, CollectionOutcome.CREATED
        except CollectionRaceError as race:
            logger.info(f"Collection {name} may have been created concurrently, fetching it")
            create_error = race.__cause__

        try:
            collection = await self.get(name)
        except CollectionNotFound:
            # Not a race after all: report what create_collection said
            raise create_error

        return collection, CollectionOutcome.RACED

    async def delete(self, name: str) -> None:
        """
        Delete a collection and all its records.

        Raises:
            CollectionNotFound: If no collection has this name
        """
        client = await self._get_client()
        try:
            await client.delete_collection(name=name)
        except NotFoundError as e:
            raise CollectionNotFound(name) from e
        logger.info(f"Deleted collection {name}")
