"""
LLM Client Infrastructure
==========================

Wrapper for the OpenAI API providing a clean interface for chat completions
and embeddings.

This module abstracts the LLM client implementation following the
Dependency Inversion Principle - the application layer depends on
abstractions, not concrete implementations.
"""

import json
import time
from abc import ABC, abstractmethod
from typing import List, Optional

from openai import AsyncOpenAI

from triage_engine.config import settings
from triage_engine.core import LLMException, ConfigurationException
from triage_engine.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class EmbeddingResult:
    """Result of an embedding generation."""

    def __init__(self, embedding: List[float], model: str):
        self.embedding = embedding
        self.model = model
        self.dimension = len(embedding)


class ChatCompletionResult:
    """Result of a chat completion."""

    def __init__(
        self,
        content: str,
        model: str,
        prompt_tokens: int,
        completion_tokens: int,
        latency_ms: int
    ):
        self.content = content
        self.model = model
        self.prompt_tokens = prompt_tokens
        self.completion_tokens = completion_tokens
        self.total_tokens = prompt_tokens + completion_tokens
        self.latency_ms = latency_ms


class ILLMClient(ABC):
    """
    Interface for LLM client operations.

    Following Interface Segregation Principle - only methods
    actually needed by the application are defined.
    """

    @abstractmethod
    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """Generate embedding for text."""

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 1000,
        operation: str = "chat_completion",
        json_mode: bool = False
    ) -> ChatCompletionResult:
        """Generate chat completion."""


class OpenAILLMClient(ILLMClient):
    """
    OpenAI client implementation.

    Provides async wrapper around OpenAI SDK operations. No retries are
    configured: a failed call is reported once and the caller decides.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        embedding_model: Optional[str] = None,
        embedding_dimension: Optional[int] = None
    ):
        self._api_key = api_key or settings.openai_api_key
        if not self._api_key:
            raise ConfigurationException("OpenAI API key not configured")

        self._client = AsyncOpenAI(api_key=self._api_key, max_retries=0)
        self._model = model or settings.classify_model
        self._embedding_model = embedding_model or settings.embedding_model
        self._embedding_dimension = embedding_dimension or settings.embedding_dimension

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """
        Generate embedding for text using the OpenAI embedding model.

        The configured dimension is requested explicitly so that the
        returned vector matches the stored vectors.

        Raises:
            LLMException: If embedding generation fails
        """
        try:
            response = await self._client.embeddings.create(
                model=self._embedding_model,
                input=text,
                dimensions=self._embedding_dimension
            )
            return EmbeddingResult(
                embedding=response.data[0].embedding,
                model=self._embedding_model
            )
        except Exception as e:
            raise LLMException(f"Embedding generation failed: {str(e)}")

    async def chat_completion(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 1000,
        operation: str = "chat_completion",
        json_mode: bool = False
    ) -> ChatCompletionResult:
        """
        Generate chat completion.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: Model override (defaults to the classification model)
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum tokens to generate
            operation: Operation name for logs (classification, summary)
            json_mode: Ask the model for a strict JSON object

        Raises:
            LLMException: If completion fails
        """
        model = model or self._model
        start_time = time.perf_counter()

        kwargs = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await self._client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                **kwargs
            )
        except Exception as e:
            raise LLMException(f"Chat completion failed: {str(e)}")

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        content = response.choices[0].message.content or ""
        usage = response.usage

        logger.info(
            "LLM call completed",
            extra={
                "operation": operation,
                "model": model,
                "latency_ms": latency_ms,
                "prompt_tokens": usage.prompt_tokens if usage else 0,
                "completion_tokens": usage.completion_tokens if usage else 0
            }
        )

        return ChatCompletionResult(
            content=content,
            model=model,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            latency_ms=latency_ms
        )


class MockLLMClient(ILLMClient):
    """
    Mock LLM client for local runs.

    Returns predictable responses without calling external APIs.
    """

    def __init__(self, embedding_dimension: Optional[int] = None):
        self._dimension = embedding_dimension or settings.embedding_dimension

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """Return mock embedding (zero vector)."""
        return EmbeddingResult(
            embedding=[0.0] * self._dimension,
            model="mock-embedding"
        )

    async def chat_completion(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 1000,
        operation: str = "chat_completion",
        json_mode: bool = False
    ) -> ChatCompletionResult:
        """Return mock response based on operation type."""
        user_content = str(messages[-1].get("content", "")) if messages else ""

        if operation == "classification":
            is_question = user_content.rstrip().endswith("?")
            content = json.dumps({
                "is_question": is_question,
                "needs_reply": is_question,
                "followup": False,
                "urgency_score": 0.0,
                "topics": [],
                "entities": {},
                "sentiment": 0.0
            })
        elif operation == "summary":
            content = "- **Key themes:** mock digest\n- **Open questions:** none\n- **Action items:** none"
        else:
            content = "This is a mock LLM response for testing purposes."

        return ChatCompletionResult(
            content=content,
            model="mock-model",
            prompt_tokens=100,
            completion_tokens=len(content.split()),
            latency_ms=0
        )


def build_llm_client(
    api_key: Optional[str] = None,
    mock: Optional[bool] = None
) -> ILLMClient:
    """Pick the mock or the OpenAI client from settings."""
    if settings.mock_llm if mock is None else mock:
        return MockLLMClient()
    return OpenAILLMClient(api_key)
