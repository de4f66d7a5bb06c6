"""
Digest Domain Entities
======================

Domain entities for the digest module.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional

from triage_engine.digest.domain.value_objects import truncate

EMPTY_SUMMARY = "_(empty)_"


@dataclass
class Summary:
    """
    Cached digest of one inclusive UTC date range.

    Immutable once stored: later messages in the range never change it.
    """
    start_date: date
    end_date: date
    summary_md: str
    created_at: datetime
    message_count: int = 0
    id: Optional[str] = None

    @property
    def days(self) -> int:
        return (self.end_date - self.start_date).days + 1


class SummaryPromptBuilder:
    """
    Builds the digest prompt.

    Each message is truncated before batching so the prompt stays bounded
    no matter how long individual messages are.
    """

    TEMPLATE = """Summarize the following messages from the last {days} days into:
- Key themes (bulleted)
- Open questions
- Action items

Keep it under 250 words. Use concise Markdown. Avoid fluff.

Messages:
{joined}"""

    @classmethod
    def build_prompt(cls, texts: List[str], days: int, snippet_chars: int = 300) -> str:
        joined = "\n".join(f"- {truncate(t, snippet_chars)}" for t in texts)
        return cls.TEMPLATE.format(days=days, joined=joined)

    @classmethod
    def build_messages(cls, texts: List[str], days: int, snippet_chars: int = 300) -> List[dict]:
        return [{"role": "user", "content": cls.build_prompt(texts, days, snippet_chars)}]
