"""
Triage Module
=============

Bounded Context for passive message triage.

Responsibilities:
- Idempotent ingestion of chat messages (de-duplicated by external reference)
- Enrichment: LLM classification and embeddings, best effort
- Follow-up tracking (open / snoozed / done)
- Priority ranking of recent messages for human review
- Semantic search over stored embeddings
"""

__version__ = "1.0.0"
