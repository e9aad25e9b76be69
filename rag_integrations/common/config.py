"""Configuration management for the RAG integration adapters.

Every adapter takes one settings object at construction and keeps it for its
whole lifetime. Settings are ``pydantic_settings.BaseSettings`` subclasses so
they can be provided via environment variables, ``.env`` files, keyword
arguments, or defaults. All of them are frozen.

Highlights
- One prefix per adapter: ``RAG_OPENAI_``, ``RAG_COHERE_``, ``RAG_PGVECTOR_``,
  ``RAG_WEAVIATE_``; shared knobs (logging, metrics) use ``RAG_``
- Required credentials default to ``None`` so a missing value is reported by
  the adapter as a ``ConfigurationError`` instead of a pydantic error

Usage
- Build explicitly: ``PgVectorConfig(dsn="postgresql://...")``
- Or from the environment: ``config = get_config("pgvector")``
"""

import os
from typing import Any, Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Settings shared by every process embedding the adapters.

    Parameters are read from ``RAG_*`` environment variables.
    """

    model_config = SettingsConfigDict(
        env_prefix="RAG_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Environment
    env: str = Field(default="local", description="Deployment environment name")

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")

    # Metrics
    metrics_enabled: bool = Field(default=True)
    service_name: str = Field(default="rag-integrations")


class AdapterConfig(BaseSettings):
    """Common behaviour for per-adapter settings (immutable, ``.env`` aware)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )


class OpenAIEmbeddingConfig(AdapterConfig):
    """Configuration for ``OpenAIEmbeddings``.

    ``dimensions`` overrides the model's native size; only the
    ``text-embedding-3-*`` family supports that.
    """

    model_config = SettingsConfigDict(env_prefix="RAG_OPENAI_")

    api_key: Optional[str] = None
    model: str = "text-embedding-3-small"
    dimensions: Optional[int] = None
    base_url: Optional[str] = None
    organization: Optional[str] = None
    timeout: float = 30.0


class CohereEmbeddingConfig(AdapterConfig):
    """Configuration for ``CohereEmbeddings``.

    Cohere has no default model here: the caller must pick one explicitly.
    """

    model_config = SettingsConfigDict(env_prefix="RAG_COHERE_")

    api_key: Optional[str] = None
    model: Optional[str] = None
    input_type: str = "search_document"
    base_url: Optional[str] = None
    timeout: float = 30.0


class PgVectorConfig(AdapterConfig):
    """Configuration for ``PgVectorStore``.

    Pool sizing maps onto ``asyncpg.create_pool``; ``dimensions=0`` creates
    an untyped ``vector`` column.
    """

    model_config = SettingsConfigDict(env_prefix="RAG_PGVECTOR_")

    dsn: Optional[str] = None
    table_name: str = "vectors"
    dimensions: int = 0
    index_type: str = "hnsw"
    distance: str = "cosine"
    vector_schema: str = "public"

    # Pool
    max_conns: int = 25
    min_conns: int = 5
    max_queries: int = 50000
    max_inactive_connection_lifetime: float = 1800.0

    # Timeouts (seconds)
    connect_timeout: float = 30.0
    command_timeout: float = 60.0


class WeaviateConfig(AdapterConfig):
    """Configuration for ``WeaviateVectorStore``.

    ``host`` is the HTTP host name; gRPC defaults to the same host.
    """

    model_config = SettingsConfigDict(env_prefix="RAG_WEAVIATE_")

    host: Optional[str] = None
    class_name: Optional[str] = None
    scheme: str = "http"
    http_port: int = 8080
    grpc_host: Optional[str] = None
    grpc_port: int = 50051
    api_key: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    timeout: float = 30.0
    distance: str = "cosine"


def get_config(name: str) -> BaseSettings:
    """Get configuration for a specific adapter.

    Parameters
    - name: ``openai``, ``cohere``, ``pgvector`` or ``weaviate``

    Returns
    - A settings instance populated from the environment. Unknown names get
      the shared ``BaseConfig``.
    """
    config_map = {
        "openai": OpenAIEmbeddingConfig,
        "cohere": CohereEmbeddingConfig,
        "pgvector": PgVectorConfig,
        "weaviate": WeaviateConfig,
    }

    config_class = config_map.get(name, BaseConfig)
    return config_class()


def load_env_file(env_file: str = ".env") -> Dict[str, Any]:
    """Load ``KEY=VALUE`` pairs from a file without touching ``os.environ``.

    Blank lines and ``#`` comments are skipped. Used by the bootstrap script
    to feed ``create_*_from_env`` helpers.
    """
    env_vars = {}
    if os.path.exists(env_file):
        with open(env_file, "r") as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, value = line.split("=", 1)
                    env_vars[key] = value
    return env_vars
