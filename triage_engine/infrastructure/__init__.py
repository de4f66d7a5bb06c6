"""
Infrastructure Layer
=====================

Cross-module technical adapters:
- database: engine, sessions and upsert statements
- llm: OpenAI (and mock) chat / embedding clients
"""
