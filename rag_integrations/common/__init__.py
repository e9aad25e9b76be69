"""Common utilities shared by all adapters.

Includes:
- ``config``: Pydantic-based adapter configuration from environment variables.
- ``logging``: structured logging setup with structlog.
- ``metrics``: Prometheus metrics helpers for embeddings and vector stores.
- ``errors``: configuration / input / upstream error taxonomy.
- ``types``: ``Vector`` and ``VectorMatch`` plus precision helpers.

Import pattern:
- from rag_integrations.common.config import PgVectorConfig
- from rag_integrations.common.logging import configure_logging
"""
