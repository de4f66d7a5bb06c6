"""
Digest Module
=============

Bounded Context for date-range digests of ingested messages.

Responsibilities:
- Compute the UTC calendar window of a digest request
- Generate a markdown digest on cache miss with an external summarizer
- Cache digests per (start_date, end_date), first writer wins
"""

__version__ = "1.0.0"
