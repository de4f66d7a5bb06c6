"""
Digest Application Layer
=========================

Contains:
- Services: SummaryCache
- Interfaces: ISummaryRepository, ISummarizer, IMessageSource
- DTOs: SummaryResponse
"""

from triage_engine.digest.application.dto import SummaryResponse
from triage_engine.digest.application.services import (
    IMessageSource,
    ISummarizer,
    ISummaryRepository,
    SummaryCache,
)

__all__ = [
    "SummaryResponse",
    "IMessageSource",
    "ISummarizer",
    "ISummaryRepository",
    "SummaryCache",
]
