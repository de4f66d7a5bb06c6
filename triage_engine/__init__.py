"""
Message Triage Engine
=====================

Ranked review, follow-ups, semantic search and cached digests over a
stream of chat messages.
"""

__version__ = "1.0.0"
