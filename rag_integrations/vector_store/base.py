"""Base vector store interface.

Defines the abstract contract the RAG orchestrator depends on, independent of
the backing implementation (pgvector, Weaviate, ...).

All methods are asynchronous. Each call is one request/response against the
backing service; deadlines belong to the caller and nothing is retried.

Lifecycle
- ``UNINITIALIZED``: constructed, configuration validated, nothing connected
- ``INITIALIZED``: ``initialize()`` connected and ran the one-time schema setup
- ``CLOSED``: ``close()`` released the pool/client; the store is unusable
"""

import math
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar

from rag_integrations.common.errors import InputValidationError, UpstreamError
from rag_integrations.common.types import Vector, VectorMatch

StoreT = TypeVar("StoreT", bound="VectorStore")


class StoreState(Enum):
    """Lifecycle states of a vector store adapter."""
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    CLOSED = "closed"


class VectorStore(ABC):
    """Abstract base class for vector stores.

    Implementations provide idempotent upserts keyed by ``Vector.id`` and
    return matches with "higher is more similar" scores, whatever metric the
    backend uses.
    """

    backend: str = "unknown"

    def __init__(self) -> None:
        self._state = StoreState.UNINITIALIZED

    @property
    def state(self) -> StoreState:
        return self._state

    @classmethod
    async def create(cls: Type[StoreT], *args: Any, **kwargs: Any) -> StoreT:
        """Construct and initialize a store in one step."""
        store = cls(*args, **kwargs)
        await store.initialize()
        return store

    @abstractmethod
    async def initialize(self) -> None:
        """Connect and ensure the schema exists (extension, table, class...)."""
        pass

    @abstractmethod
    async def upsert(self, vectors: List[Vector]) -> None:
        """Insert or replace vectors by id.

        An empty list is a no-op. Invalid items raise ``InputValidationError``
        before anything is written.
        """
        pass

    @abstractmethod
    async def query(
        self,
        vector: Sequence[float],
        limit: int,
        filter: Optional[Dict[str, Any]] = None
    ) -> List[VectorMatch]:
        """Return up to ``limit`` matches ordered by descending similarity.

        ``filter`` is a conjunction of metadata ``key == value`` conditions.
        """
        pass

    @abstractmethod
    async def delete(self, ids: List[str]) -> None:
        """Remove vectors by id; unknown ids are ignored."""
        pass

    @abstractmethod
    async def count(self) -> int:
        """Total number of vectors in the store."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the backing service answers. Never raises."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the pool/client. Safe to call more than once."""
        pass

    async def __aenter__(self: StoreT) -> StoreT:
        if self._state == StoreState.UNINITIALIZED:
            await self.initialize()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _ensure_initialized(self) -> None:
        if self._state == StoreState.UNINITIALIZED:
            raise VectorStoreConnectionError(f"{self.backend} store is not initialized")
        if self._state == StoreState.CLOSED:
            raise VectorStoreConnectionError(f"{self.backend} store is closed")


def validate_vectors(vectors: List[Vector], reserved_keys: Sequence[str] = ()) -> None:
    """Reject vectors with an empty id, no values, or reserved metadata keys.

    ``reserved_keys`` names metadata keys a backend uses for its own
    bookkeeping (e.g. the caller id property on Weaviate).
    """
    for vector in vectors:
        if not vector.id:
            raise InputValidationError("vector ID cannot be empty")
        if vector.values is None or len(vector.values) == 0:
            raise InputValidationError(f"vector values cannot be empty for ID {vector.id}")
        for key in reserved_keys:
            if vector.metadata and key in vector.metadata:
                raise InputValidationError(f"metadata key '{key}' is reserved (ID {vector.id})")


def validate_query(vector: Sequence[float], limit: int) -> None:
    """Reject an empty query vector or a non-positive limit."""
    if vector is None or len(vector) == 0:
        raise InputValidationError("query vector cannot be empty")
    if limit <= 0:
        raise InputValidationError(f"limit must be positive, got {limit}")


def distance_to_score(distance: float, metric: str) -> float:
    """Convert a backend distance into a "higher is more similar" score.

    Cosine distance maps to cosine similarity (``1 - distance``); the other
    metrics are negated so that ordering is preserved.
    """
    if distance is None or math.isnan(distance):
        return float("-inf")
    if metric == "cosine":
        return 1.0 - distance
    return -distance


class VectorStoreError(UpstreamError):
    """Base exception for vector store operations."""
    pass


class VectorStoreConnectionError(VectorStoreError):
    """Connection error to vector store."""
    pass


class VectorStoreQueryError(VectorStoreError):
    """Query error in vector store."""
    pass
