"""Shared HTTP concerns (middleware and exception handlers)."""
