"""
Digest Interfaces Layer
========================

Contains:
- Controllers: FastAPI route handlers
"""

from triage_engine.digest.interfaces.controllers import digest_router

__all__ = ["digest_router"]
