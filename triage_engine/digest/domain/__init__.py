"""
Digest Domain Layer
===================

Contains:
- Entities: Summary, SummaryPromptBuilder
- Value Objects: DateRange, truncate

This layer is framework-agnostic and contains pure business logic.
"""

from triage_engine.digest.domain.entities import EMPTY_SUMMARY, Summary, SummaryPromptBuilder
from triage_engine.digest.domain.value_objects import DateRange, truncate

__all__ = [
    "EMPTY_SUMMARY",
    "Summary",
    "SummaryPromptBuilder",
    "DateRange",
    "truncate",
]
