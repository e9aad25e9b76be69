"""Vector store factory for creating different implementations.

Centralizes creation of concrete ``VectorStore`` backends so callers don't
depend on implementation details. New stores can be added without changing
call sites.
"""

import json
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from rag_integrations.common.config import PgVectorConfig, WeaviateConfig
from rag_integrations.common.errors import ConfigurationError
from rag_integrations.common.logging import get_logger
from rag_integrations.common.metrics import MetricsCollector

from .base import VectorStore
from .pgvector import PgVectorStore
from .weaviate import WeaviateVectorStore

logger = get_logger("vector_store.factory")


class VectorStoreType(Enum):
    """Supported vector store types."""
    PGVECTOR = "pgvector"
    WEAVIATE = "weaviate"


_CONFIG_CLASSES = {
    VectorStoreType.PGVECTOR: PgVectorConfig,
    VectorStoreType.WEAVIATE: WeaviateConfig,
}


def _store_type(store_type: Union[str, VectorStoreType]) -> VectorStoreType:
    if isinstance(store_type, VectorStoreType):
        return store_type
    try:
        return VectorStoreType(store_type)
    except ValueError:
        raise ConfigurationError(f"Unsupported vector store type: {store_type}") from None


def create_vector_store(
    store_type: Union[str, VectorStoreType],
    config: Optional[Union[PgVectorConfig, WeaviateConfig]] = None,
    metrics: Optional[MetricsCollector] = None,
    logger: Optional[Any] = None,
    **overrides: Any
) -> VectorStore:
    """Create a vector store instance (not yet initialized).

    Parameters
    - store_type: ``pgvector``/``weaviate`` or a ``VectorStoreType``
    - config: Backend config; read from the environment when omitted
    - overrides: Config fields replacing values from ``config``/environment
    """
    store_type = _store_type(store_type)
    config_class = _CONFIG_CLASSES[store_type]

    if config is None:
        config = config_class(**overrides)
    elif overrides:
        config = config.model_copy(update=overrides)

    if store_type == VectorStoreType.PGVECTOR:
        return PgVectorStore(config, logger=logger, metrics=metrics)
    return WeaviateVectorStore(config, logger=logger, metrics=metrics)


def create_vector_store_from_env(
    env_config: Dict[str, str],
    metrics: Optional[MetricsCollector] = None
) -> VectorStore:
    """Create vector store from environment configuration.

    Parameters
    - env_config: A flat mapping of environment variable names to values.
      ``RAG_VECTOR_BACKEND`` selects the backend (default ``pgvector``); the
      remaining settings use the backend's ``RAG_PGVECTOR_*`` or
      ``RAG_WEAVIATE_*`` names. ``RAG_WEAVIATE_HEADERS`` is a JSON object.

    Returns
    - A ``VectorStore`` configured to talk to the backing datastore
    """
    store_type = _store_type(env_config.get("RAG_VECTOR_BACKEND", "pgvector"))
    prefix = f"RAG_{store_type.value.upper()}_"

    fields: Dict[str, Any] = {
        key[len(prefix):].lower(): value
        for key, value in env_config.items()
        if key.startswith(prefix) and value is not None
    }

    if isinstance(fields.get("headers"), str):
        try:
            fields["headers"] = json.loads(fields["headers"])
        except ValueError:
            raise ConfigurationError(f"{prefix}HEADERS must be a JSON object") from None

    try:
        config = _CONFIG_CLASSES[store_type].model_validate(fields)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid {store_type.value} settings: {e}") from e

    logger.info("Creating vector store from environment", backend=store_type.value)
    return create_vector_store(store_type, config=config, metrics=metrics)


async def open_vector_store(
    store_type: Union[str, VectorStoreType],
    config: Optional[Union[PgVectorConfig, WeaviateConfig]] = None,
    metrics: Optional[MetricsCollector] = None,
    **overrides: Any
) -> VectorStore:
    """Create a vector store and run its one-time initialization."""
    store = create_vector_store(store_type, config=config, metrics=metrics, **overrides)
    await store.initialize()
    return store
