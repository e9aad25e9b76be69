"""Integration test suite against live backing services.

Runs the vector store adapters against a real PostgreSQL (with pgvector) and
a real Weaviate instance. Skipped unless ``RAG_TEST_PG_DSN`` or
``RAG_TEST_WEAVIATE_HOST`` point at one.
"""
