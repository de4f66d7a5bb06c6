"""
Triage Interfaces Layer
========================

Interface adapters (controllers) for the message triage module.

Contains:
- Controllers: FastAPI route handlers
"""

from triage_engine.triage.interfaces.controllers import triage_router

__all__ = ["triage_router"]
