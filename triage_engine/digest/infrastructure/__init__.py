"""
Digest Infrastructure Layer
============================

Contains:
- Models: SQLAlchemy ORM models
- Repositories: summary cache storage
- External: LLM summarizer
"""

from triage_engine.digest.infrastructure.models import SummaryModel
from triage_engine.digest.infrastructure.repositories import SQLAlchemySummaryRepository
from triage_engine.digest.infrastructure.external import LLMSummarizer

__all__ = [
    "SummaryModel",
    "SQLAlchemySummaryRepository",
    "LLMSummarizer",
]
