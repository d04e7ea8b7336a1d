"""Embedding model integration with Hugging Face Inference API."""
import asyncio
import logging
import time
from typing import List, Optional

import httpx

from docqa.config import EMBEDDING_API_URL, EMBEDDING_MODEL, HUGGINGFACE_API_KEY
from docqa.errors import EmbeddingServiceError, InvalidArgument, InvalidConfiguration, ServiceError

logger = logging.getLogger(__name__)

HF_FEATURE_EXTRACTION_URL = "https://router.huggingface.co/hf-inference/models/{model}/pipeline/feature-extraction"


class EmbeddingModel:
    """Async wrapper for Hugging Face Inference API embedding model."""

    def __init__(
        self,
        api_key: Optional[str] = HUGGINGFACE_API_KEY,
        model_name: str = EMBEDDING_MODEL,
        api_url: Optional[str] = EMBEDDING_API_URL,
        max_retries: int = 5,
        initial_delay: float = 5.0,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the embedding model client.

        Args:
            api_key: Hugging Face API key
            model_name: Model identifier (default: sentence-transformers/all-mpnet-base-v2)
            api_url: Full endpoint URL; derived from model_name when omitted
            max_retries: Maximum number of attempts for 503 and transport errors
            initial_delay: Initial delay in seconds for exponential backoff
            timeout: Request timeout in seconds
            transport: Optional httpx transport, used to stub the network in tests
        """
        if not api_key:
            raise InvalidConfiguration("HUGGINGFACE_API_KEY environment variable is required")
        if max_retries < 1:
            raise InvalidConfiguration("max_retries must be at least 1")

        self.api_key = api_key
        self.model_name = model_name
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.timeout = timeout
        self.transport = transport
        self.api_url = api_url or HF_FEATURE_EXTRACTION_URL.format(model=model_name)

        logger.info(f"Initialized EmbeddingModel with model: {model_name}")

    async def embed_text(self, text: str) -> List[float]:
        """
        Generate embedding for a single text string.

        Args:
            text: Text to embed

        Returns:
            Embedding vector as list of floats

        Raises:
            InvalidArgument: If text is empty
            EmbeddingServiceError: If API request fails after all retries
        """
        if not text or not text.strip():
            raise InvalidArgument("Text cannot be empty")

        return (await self._embed_with_retry([text]))[0]

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for multiple texts in a single API call.

        The i-th vector returned belongs to the i-th input text.

        Args:
            texts: List of texts to embed

        Returns:
            List of embedding vectors, same length and order as texts

        Raises:
            InvalidArgument: If texts list is empty or contains empty strings
            EmbeddingServiceError: If API request fails after all retries
        """
        if not texts:
            raise InvalidArgument("Texts list cannot be empty")

        blank = [i for i, t in enumerate(texts) if not t or not t.strip()]
        if blank:
            raise InvalidArgument(f"Texts at positions {blank} are empty")

        return await self._embed_with_retry(list(texts))

    async def _embed_with_retry(self, texts: List[str]) -> List[List[float]]:
        """
        Call HF API with exponential backoff retry strategy.

        HF free tier models "sleep" and take 15-20s to load on first query,
        so 503 responses and transport errors are retried.

        Args:
            texts: List of texts to embed

        Returns:
            List of embedding vectors

        Raises:
            EmbeddingServiceError: If API request fails after all retries
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        payload = {
            "inputs": texts,
            "options": {
                "wait_for_model": True  # Wait for model to load if sleeping
            }
        }

        delay = self.initial_delay
        last_error = ServiceError(code="UNKNOWN_ERROR", message="No attempt made")

        for attempt in range(self.max_retries):
            start_time = time.time()
            try:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                    response = await client.post(self.api_url, headers=headers, json=payload)

            except httpx.TimeoutException as e:
                last_error = self._error("TIMEOUT_ERROR", f"Request timeout after {self.timeout}s", e)
                logger.error(f"{last_error.message} on attempt {attempt + 1}/{self.max_retries}")

            except httpx.RequestError as e:
                last_error = self._error("NETWORK_ERROR", f"Network error: {str(e)}", e)
                logger.error(f"{last_error.message} on attempt {attempt + 1}/{self.max_retries}")

            else:
                elapsed = time.time() - start_time

                # Handle 503 Service Unavailable (model loading)
                if response.status_code == 503:
                    last_error = self._error(
                        "MODEL_LOADING",
                        f"Model failed to load after {self.max_retries} attempts"
                    )
                    logger.warning(
                        f"Model loading (503) on attempt {attempt + 1}/{self.max_retries}. "
                        f"Retrying in {delay}s..."
                    )

                # Handle rate limiting
                elif response.status_code == 429:
                    logger.error("Rate limit exceeded for Hugging Face API")
                    raise EmbeddingServiceError(self._error(
                        "RATE_LIMIT_ERROR", "Rate limit exceeded. Please try again later."
                    ))

                # Handle authentication errors
                elif response.status_code in (401, 403):
                    logger.error("Authentication failed for Hugging Face API")
                    raise EmbeddingServiceError(self._error("AUTHENTICATION_ERROR", "Invalid API key"))

                # Handle other errors
                elif response.status_code != 200:
                    error_msg = f"API request failed with status {response.status_code}: {response.text}"
                    logger.error(error_msg)
                    raise EmbeddingServiceError(self._error("API_ERROR", error_msg))

                else:
                    embeddings = self._parse_embeddings(response, len(texts))

                    if elapsed > 10.0:
                        logger.info(
                            f"Model loading delay detected: {elapsed:.1f}s for {len(texts)} texts "
                            f"(attempt {attempt + 1})"
                        )
                    else:
                        logger.debug(f"Generated embeddings for {len(texts)} texts in {elapsed:.2f}s")

                    return embeddings

            if attempt < self.max_retries - 1:
                await asyncio.sleep(delay)
                delay = min(delay * 2, 60.0)  # Exponential backoff, max 60s

        # All retries exhausted
        logger.error(
            f"Failed to generate embeddings after {self.max_retries} attempts. "
            f"Last error: {last_error.message}"
        )
        raise EmbeddingServiceError(last_error)

    def _parse_embeddings(self, response: httpx.Response, expected: int) -> List[List[float]]:
        """Validate the response body: one equally sized vector per input, in order."""
        try:
            embeddings = response.json()
        except ValueError as e:
            raise EmbeddingServiceError(self._error("INVALID_RESPONSE", "Response is not valid JSON", e)) from e

        if not isinstance(embeddings, list) or len(embeddings) != expected:
            got = len(embeddings) if isinstance(embeddings, list) else type(embeddings).__name__
            raise EmbeddingServiceError(self._error(
                "CONTRACT_VIOLATION",
                f"Expected {expected} embeddings, got {got}"
            ))

        dimensions = {len(vector) if isinstance(vector, list) else -1 for vector in embeddings}
        if len(dimensions) != 1 or -1 in dimensions or 0 in dimensions:
            raise EmbeddingServiceError(self._error(
                "CONTRACT_VIOLATION",
                f"Embeddings have inconsistent dimensions: {sorted(dimensions)}"
            ))

        try:
            return [[float(value) for value in vector] for vector in embeddings]
        except (TypeError, ValueError) as e:
            raise EmbeddingServiceError(self._error(
                "CONTRACT_VIOLATION", "Embeddings must be flat lists of numbers", e
            )) from e

    def _error(self, code: str, message: str, original: Optional[Exception] = None) -> ServiceError:
        details = {"model": self.model_name}
        if original is not None:
            details["original_error"] = str(original)
        return ServiceError(code=code, message=message, details=details)
