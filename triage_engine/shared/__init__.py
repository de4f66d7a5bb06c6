"""
Shared Kernel Module
====================

Generic infrastructure used by both bounded contexts (Triage and Digest):
structured logging and HTTP middleware.

DO NOT add triage or digest business logic to the shared kernel.
"""
