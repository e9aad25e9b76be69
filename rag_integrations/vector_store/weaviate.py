"""Weaviate vector store implementation.

Uses the v4 ``weaviate-client`` async API (REST for schema and batch writes,
gRPC for searches). One Weaviate class (collection) holds every vector; the
class is created with vectorization disabled because callers always supply
their own vectors.

Identifiers
- Weaviate object ids must be UUIDs. Caller ids already in canonical UUID
  form are used as-is, anything else maps to a deterministic UUIDv5
- The caller id is kept in the ``vector_id`` property and returned by
  ``query`` so the mapping is invisible to callers. ``vector_id`` is
  therefore a reserved metadata key and rejected on upsert

Weaviate has no multi-object transaction: a batch upsert is best-effort per
object and failures are reported after the batch, with the ids that failed.
"""

import time
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple

import weaviate
from weaviate.classes.config import Configure, ConsistencyLevel, VectorDistances
from weaviate.classes.data import DataObject
from weaviate.classes.init import AdditionalConfig, Auth, Timeout
from weaviate.classes.query import Filter, MetadataQuery
from weaviate.util import generate_uuid5

from rag_integrations.common.config import WeaviateConfig
from rag_integrations.common.errors import ConfigurationError
from rag_integrations.common.logging import get_logger
from rag_integrations.common.metrics import MetricsCollector
from rag_integrations.common.types import Vector, VectorMatch, to_float32

from .base import (
    StoreState,
    VectorStore,
    VectorStoreConnectionError,
    VectorStoreError,
    VectorStoreQueryError,
    distance_to_score,
    validate_query,
    validate_vectors,
)

ID_PROPERTY = "vector_id"

DISTANCES = {
    "cosine": VectorDistances.COSINE,
    "dot": VectorDistances.DOT,
    "l2-squared": VectorDistances.L2_SQUARED,
}

SCHEMES = ("http", "https")


def to_weaviate_uuid(identifier: str) -> str:
    """Map a caller id onto a Weaviate object UUID.

    Only ids already in canonical form (lowercase, hyphenated) are used
    verbatim. Other spellings of a UUID are distinct caller ids and get their
    own UUIDv5 like any other string.
    """
    try:
        canonical = str(uuid.UUID(identifier))
    except ValueError:
        canonical = None

    if canonical == identifier:
        return identifier
    return generate_uuid5(identifier)


def build_weaviate_filter(filter: Optional[Dict[str, Any]]) -> Optional[Any]:
    """Build an AND of property equality conditions, or ``None``."""
    if not filter:
        return None

    conditions = [Filter.by_property(key).equal(value) for key, value in filter.items()]
    if len(conditions) == 1:
        return conditions[0]
    return Filter.all_of(conditions)


def _split_host(host: str, default_port: int) -> Tuple[str, int]:
    # Accept "localhost:8080" as well as a bare host name
    name, sep, port = host.rpartition(":")
    if sep and port.isdigit() and name:
        return name, int(port)
    return host, default_port


class WeaviateVectorStore(VectorStore):
    """Weaviate-based vector store implementation."""

    backend = "weaviate"

    def __init__(
        self,
        config: WeaviateConfig,
        logger: Optional[Any] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        """Validate configuration; the client connects in ``initialize()``.

        Parameters
        - config: ``WeaviateConfig`` with at least ``host`` and ``class_name``
        - logger: Optional structlog logger; defaults to ``vector_store.weaviate``
        - metrics: Optional ``MetricsCollector``
        """
        super().__init__()

        if not config.host:
            raise ConfigurationError("host is required")
        if not config.class_name:
            raise ConfigurationError("class name is required")
        if config.scheme not in SCHEMES:
            raise ConfigurationError(f"unsupported scheme: {config.scheme} (use 'http' or 'https')")
        if config.distance not in DISTANCES:
            raise ConfigurationError(
                f"unsupported distance: {config.distance} "
                f"(use one of {', '.join(DISTANCES)})"
            )

        self.config = config
        self.class_name = config.class_name
        self.http_host, self.http_port = _split_host(config.host, config.http_port)
        self.grpc_host = config.grpc_host or self.http_host
        self._logger = logger or get_logger("vector_store.weaviate")
        self._metrics = metrics
        self._client: Optional[Any] = None

    def _build_client(self) -> Any:
        secure = self.config.scheme == "https"
        return weaviate.use_async_with_custom(
            http_host=self.http_host,
            http_port=self.http_port,
            http_secure=secure,
            grpc_host=self.grpc_host,
            grpc_port=self.config.grpc_port,
            grpc_secure=secure,
            headers=dict(self.config.headers) or None,
            additional_config=AdditionalConfig(
                timeout=Timeout(
                    init=self.config.timeout,
                    query=self.config.timeout,
                    insert=self.config.timeout,
                )
            ),
            auth_credentials=Auth.api_key(self.config.api_key) if self.config.api_key else None,
        )

    def _collection(self) -> Any:
        return self._client.collections.get(self.class_name).with_consistency_level(
            ConsistencyLevel.QUORUM
        )

    async def initialize(self) -> None:
        """Connect and create the class if it doesn't exist."""
        if self._state == StoreState.INITIALIZED:
            return
        if self._state == StoreState.CLOSED:
            raise VectorStoreConnectionError("weaviate store is closed")

        client = self._build_client()
        try:
            await client.connect()
        except Exception as e:
            self._logger.error("Failed to connect to Weaviate", host=self.http_host, error=str(e))
            raise VectorStoreConnectionError(f"Failed to connect to Weaviate: {e}") from e

        self._client = client
        try:
            await self._ensure_class()
        except Exception as e:
            await client.close()
            self._client = None
            self._logger.error("Failed to ensure Weaviate class", class_name=self.class_name, error=str(e))
            raise VectorStoreError(f"Failed to ensure class: {e}") from e

        self._state = StoreState.INITIALIZED
        self._logger.info("Weaviate store initialized", class_name=self.class_name, host=self.http_host)

    async def _ensure_class(self) -> None:
        if await self._client.collections.exists(self.class_name):
            self._logger.debug("Class already exists", class_name=self.class_name)
            return

        await self._client.collections.create(
            self.class_name,
            description="Vector store class for RAG integrations",
            vectorizer_config=Configure.Vectorizer.none(),
            vector_index_config=Configure.VectorIndex.hnsw(
                distance_metric=DISTANCES[self.config.distance]
            ),
        )
        self._logger.info("Created Weaviate class", class_name=self.class_name)

    async def upsert(self, vectors: List[Vector]) -> None:
        """Batch-write objects; ids that fail are reported after the batch."""
        if not vectors:
            return

        validate_vectors(vectors, reserved_keys=(ID_PROPERTY,))
        self._ensure_initialized()

        started = time.perf_counter()
        objects = []
        for v in vectors:
            properties = dict(v.metadata or {})
            properties[ID_PROPERTY] = v.id
            objects.append(
                DataObject(
                    properties=properties,
                    uuid=to_weaviate_uuid(v.id),
                    vector=to_float32(v.values),
                )
            )

        try:
            result = await self._collection().data.insert_many(objects)
        except Exception as e:
            self._logger.error("Batch upsert failed", count=len(vectors), error=str(e))
            raise VectorStoreQueryError(f"batch upsert failed: {e}") from e

        if result.has_errors:
            failed = {vectors[index].id: error.message for index, error in result.errors.items()}
            self._logger.error(
                "Batch upsert partially failed",
                count=len(vectors),
                failed_count=len(failed)
            )
            raise VectorStoreQueryError(f"batch upsert error for {len(failed)} vectors: {failed}")

        duration = time.perf_counter() - started
        self._logger.debug("Upserted vectors to weaviate", count=len(vectors), duration_ms=duration * 1000)

        if self._metrics is not None:
            self._metrics.record_vector_store_operation(
                self.backend, "upsert", duration=duration, items=len(vectors)
            )

    async def query(
        self,
        vector: Sequence[float],
        limit: int,
        filter: Optional[Dict[str, Any]] = None
    ) -> List[VectorMatch]:
        """Near-vector search with optional property equality filter."""
        validate_query(vector, limit)
        self._ensure_initialized()

        started = time.perf_counter()
        try:
            response = await self._collection().query.near_vector(
                near_vector=to_float32(vector),
                limit=limit,
                filters=build_weaviate_filter(filter),
                return_metadata=MetadataQuery(distance=True),
            )
        except Exception as e:
            self._logger.error("Weaviate query failed", error=str(e))
            raise VectorStoreQueryError(f"query failed: {e}") from e

        matches = []
        for obj in response.objects:
            properties = dict(obj.properties or {})
            vector_id = properties.pop(ID_PROPERTY, None) or str(obj.uuid)
            matches.append(
                VectorMatch(
                    id=vector_id,
                    score=distance_to_score(obj.metadata.distance, self.config.distance),
                    metadata=properties,
                )
            )

        duration = time.perf_counter() - started
        self._logger.debug("Queried weaviate", results=len(matches), limit=limit, duration_ms=duration * 1000)

        if self._metrics is not None:
            self._metrics.record_vector_store_operation(
                self.backend, "query", duration=duration, results=len(matches)
            )

        return matches

    async def delete(self, ids: List[str]) -> None:
        """Delete objects one by one; every id is attempted.

        Missing objects are not errors. If any delete fails, the last failure
        is raised after all ids have been tried.
        """
        if not ids:
            return

        self._ensure_initialized()
        started = time.perf_counter()
        collection = self._collection()

        deleted = 0
        last_error: Optional[Exception] = None
        for vector_id in ids:
            try:
                if await collection.data.delete_by_id(to_weaviate_uuid(vector_id)):
                    deleted += 1
            except Exception as e:
                last_error = e
                self._logger.warning("Failed to delete object", id=vector_id, error=str(e))

        self._logger.debug(
            "Deleted vectors from weaviate",
            requested=len(ids),
            deleted=deleted,
            duration_ms=(time.perf_counter() - started) * 1000
        )

        if self._metrics is not None:
            self._metrics.record_vector_store_operation(
                self.backend, "delete", duration=time.perf_counter() - started, items=deleted
            )

        if last_error is not None:
            raise VectorStoreQueryError(f"delete failed: {last_error}") from last_error

    async def count(self) -> int:
        """Aggregate total object count of the class."""
        self._ensure_initialized()
        try:
            result = await self._collection().aggregate.over_all(total_count=True)
        except Exception as e:
            self._logger.error("Weaviate count failed", error=str(e))
            raise VectorStoreQueryError(f"count failed: {e}") from e
        return int(result.total_count or 0)

    async def health_check(self) -> bool:
        """Check if Weaviate reports ready."""
        if self._state != StoreState.INITIALIZED:
            return False
        try:
            return bool(await self._client.is_ready())
        except Exception as e:
            self._logger.error("Health check failed", error=str(e))
            return False

    async def close(self) -> None:
        """Close the Weaviate client connection."""
        if self._state == StoreState.CLOSED:
            return
        if self._client is not None:
            await self._client.close()
            self._client = None
        self._state = StoreState.CLOSED
        self._logger.info("Weaviate store closed", class_name=self.class_name)
