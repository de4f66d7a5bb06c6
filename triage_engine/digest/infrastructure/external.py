"""
Digest External Service Adapters
==================================

LLM-backed summarizer for the summary cache.
"""

from typing import List, Optional

from triage_engine.core import LLMException
from triage_engine.digest.application import ISummarizer
from triage_engine.digest.domain import EMPTY_SUMMARY, SummaryPromptBuilder
from triage_engine.infrastructure.llm import ILLMClient


class LLMSummarizer(ISummarizer):
    """
    Summarizer that asks a chat model for a markdown digest.

    No retries: a failed call raises `LLMException` to the requester.
    """

    def __init__(
        self,
        llm_client: ILLMClient,
        model: Optional[str] = None,
        snippet_chars: int = 300,
        temperature: float = 0.3,
        max_tokens: int = 1000
    ):
        self._llm = llm_client
        self._model = model
        self._snippet_chars = snippet_chars
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def summarize(self, texts: List[str], days: int) -> str:
        messages = SummaryPromptBuilder.build_messages(texts, days, self._snippet_chars)
        try:
            response = await self._llm.chat_completion(
                messages=messages,
                model=self._model,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
                operation="summary"
            )
        except LLMException:
            raise
        except Exception as e:
            raise LLMException(f"Summary generation failed: {e}")

        return response.content or EMPTY_SUMMARY
