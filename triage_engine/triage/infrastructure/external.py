"""
Triage External Service Adapters
==================================

Adapters for external services used by the triage module.

Implements the application-layer LLM interface on top of the shared
infrastructure client (OpenAI or mock).
"""

from typing import List, Optional

from triage_engine.infrastructure.llm import (
    ChatCompletionResult,
    EmbeddingResult,
    ILLMClient as InfrastructureLLMClient,
    build_llm_client,
)
from triage_engine.triage.application import ILLMClient


class LLMClientAdapter(ILLMClient):
    """
    Adapter that wraps the infrastructure LLM client.

    Implements the application layer ILLMClient interface so that the
    enrichment service never imports the OpenAI SDK.
    """

    def __init__(self, client: Optional[InfrastructureLLMClient] = None):
        self._client = client or build_llm_client()

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
        return await self._client.chat_completion(
            messages,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            operation=operation,
            json_mode=json_mode
        )

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """Generate an embedding vector."""
        return await self._client.generate_embedding(text)
