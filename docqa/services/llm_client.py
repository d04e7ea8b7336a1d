"""LLM Client for Groq API integration."""
import time
from dataclasses import dataclass
from typing import List, Optional
from groq import AsyncGroq
from groq import RateLimitError, AuthenticationError, APIError, APITimeoutError
import logging

from docqa.config import GROQ_API_KEY, LLM_MODEL
from docqa.errors import InvalidConfiguration, LLMServiceError, ServiceError

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = """Based on the following information about {domain}, answer the user's question accurately.

CONTEXT:
{context}

USER QUESTION: {query}

Provide a detailed answer based on the context. If the context doesn't contain enough information, mention that.

ANSWER:"""


@dataclass
class LLMResponse:
    """Response from LLM generation."""
    text: str
    tokens_input: int
    tokens_output: int
    latency_ms: int
    model_used: str


class LLMClient:
    """Client for interfacing with Groq API for text generation."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = LLM_MODEL,
        max_tokens: int = 2048,
        temperature: float = 0.7,
        client: Optional[AsyncGroq] = None
    ):
        """
        Initialize LLM client with Groq API key.

        Args:
            api_key: Groq API key (defaults to GROQ_API_KEY from environment)
            model: Chat model used for every generation
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature
            client: Pre-built AsyncGroq client, mainly for tests
        """
        self.api_key = api_key or GROQ_API_KEY
        if not self.api_key and client is None:
            raise InvalidConfiguration("GROQ_API_KEY must be provided or set in environment")

        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.client = client or AsyncGroq(api_key=self.api_key)
        logger.info(f"LLMClient initialized with model: {model}")

    async def generate(self, prompt: str) -> LLMResponse:
        """
        Generate response using Groq API.

        Args:
            prompt: Complete prompt with context and query

        Returns:
            LLMResponse with text, token counts, and latency

        Raises:
            LLMServiceError: Structured error with code, message, and details
        """
        model = self.model
        start_time = time.time()

        try:
            logger.debug(f"Generating response with model: {model}")

            response = await self.client.chat.completions.create(
                model=model,
                messages=[
                    {
                        "role": "user",
                        "content": prompt
                    }
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature
            )

            latency_ms = int((time.time() - start_time) * 1000)

            text = response.choices[0].message.content or ""

            tokens_input = response.usage.prompt_tokens
            tokens_output = response.usage.completion_tokens

            logger.info(
                f"Generated response: model={model}, "
                f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
                f"latency={latency_ms}ms"
            )

            return LLMResponse(
                text=text,
                tokens_input=tokens_input,
                tokens_output=tokens_output,
                latency_ms=latency_ms,
                model_used=model
            )

        except RateLimitError as e:
            raise self._failure(
                "RATE_LIMIT_ERROR",
                "Rate limit exceeded. Please try again in a few moments.",
                e, start_time, retry_after=60
            ) from e

        except AuthenticationError as e:
            raise self._failure(
                "AUTHENTICATION_ERROR",
                "Authentication failed. Please check your API key.",
                e, start_time
            ) from e

        except APITimeoutError as e:
            raise self._failure("TIMEOUT_ERROR", "Request timed out. Please try again.", e, start_time) from e

        except APIError as e:
            raise self._failure("API_ERROR", f"Groq API error: {str(e)}", e, start_time) from e

        except Exception as e:
            raise self._failure(
                "UNKNOWN_ERROR",
                f"Unexpected error during generation: {str(e)}",
                e, start_time, error_type=type(e).__name__
            ) from e

    async def aclose(self) -> None:
        """Close the underlying Groq HTTP client."""
        await self.client.close()

    def _failure(self, code: str, message: str, original: Exception, start_time: float, **details) -> LLMServiceError:
        latency_ms = int((time.time() - start_time) * 1000)
        error = ServiceError(
            code=code,
            message=message,
            details={
                "model": self.model,
                "latency_ms": latency_ms,
                "original_error": str(original),
                **details
            }
        )
        logger.error(
            f"{code}: model={self.model}, latency={latency_ms}ms, error={original}",
            exc_info=True,
            extra={"error_code": error.code, "error_details": error.details}
        )
        return LLMServiceError(error)

    @staticmethod
    def build_prompt(
        query: str,
        retrieved_chunks: Optional[List[str]] = None,
        domain: str = "the provided document"
    ) -> str:
        """
        Build prompt template with context and query.

        Args:
            query: User question
            retrieved_chunks: Retrieved chunk texts, most similar first
            domain: What the document is about, used in the framing sentence

        Returns:
            Complete prompt string
        """
        context = "\n\n".join(retrieved_chunks or [])
        return PROMPT_TEMPLATE.format(domain=domain, context=context, query=query)
