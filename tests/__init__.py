"""Tests for the RAG integration adapters.

Unit tests replace vendor clients (OpenAI, Cohere, asyncpg, Weaviate) with
mocks; ``tests/integration`` runs round trips against live stores when they
are configured.
"""
