"""Vector store adapters and utilities.

Primary components:
- ``base``: abstract ``VectorStore`` interface, lifecycle and common exceptions.
- ``pgvector``: PostgreSQL/pgvector implementation of the interface.
- ``weaviate``: Weaviate implementation of the interface.
- ``factory``: helpers to construct a store from typed config or env.

Guidance:
- Prefer constructing via ``factory.create_vector_store_from_env`` so runtime
  services remain decoupled from specific backends.
"""

from .base import (
    StoreState,
    VectorStore,
    VectorStoreConnectionError,
    VectorStoreError,
    VectorStoreQueryError,
)
from .factory import (
    VectorStoreType,
    create_vector_store,
    create_vector_store_from_env,
    open_vector_store,
)
from .pgvector import PgVectorStore
from .weaviate import WeaviateVectorStore

__all__ = [
    "StoreState",
    "VectorStore",
    "VectorStoreConnectionError",
    "VectorStoreError",
    "VectorStoreQueryError",
    "PgVectorStore",
    "WeaviateVectorStore",
    "VectorStoreType",
    "create_vector_store",
    "create_vector_store_from_env",
    "open_vector_store",
]
