"""PgVector implementation of vector store.

Vectors live in one PostgreSQL table with a pgvector ``embedding`` column and
a JSONB ``metadata`` column. Similarity is computed by PostgreSQL; this module
only writes SQL.

Connection management
- ``initialize()`` runs the schema setup over a single connection, then opens
  a shared asyncpg pool sized from ``PgVectorConfig``
- Pool connections encode ``vector`` values as text (``[1.000000,...]``) and
  ``jsonb`` values as JSON
- Queries are funneled through ``_execute_query`` for uniform error handling

Batch upserts go through ``executemany`` and land atomically: either the
whole batch is written or none of it.
"""

import json
import time
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import asyncpg
from asyncpg import Connection, Pool

from rag_integrations.common.config import PgVectorConfig
from rag_integrations.common.errors import ConfigurationError
from rag_integrations.common.logging import get_logger
from rag_integrations.common.metrics import MetricsCollector
from rag_integrations.common.types import Vector, VectorMatch

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

INDEX_TYPES = ("hnsw", "ivfflat")

# distance name -> (pgvector operator, operator class)
DISTANCE_OPERATORS = {
    "cosine": ("<=>", "vector_cosine_ops"),
    "inner_product": ("<#>", "vector_ip_ops"),
    "l2": ("<->", "vector_l2_ops"),
}

DEFAULT_IVFFLAT_LISTS = 100


def quote_identifier(name: str) -> str:
    """Quote a PostgreSQL identifier, escaping embedded double quotes."""
    return '"' + name.replace('"', '""') + '"'


def vector_to_string(values: Iterable[float]) -> str:
    """Render values in pgvector's text format with six decimals."""
    return "[" + ",".join(f"{float(v):f}" for v in values) + "]"


def string_to_vector(value: str) -> List[float]:
    """Parse pgvector's text format back into floats."""
    stripped = value.strip().strip("[]")
    if not stripped:
        return []
    return [float(part) for part in stripped.split(",")]


def _filter_value(value: Any) -> str:
    # ``->>`` yields text, so compare against the JSON text form
    if isinstance(value, str):
        return value
    return json.dumps(value)


def build_where_clause(
    filter: Optional[Dict[str, Any]],
    start_index: int = 1
) -> Tuple[str, List[Any]]:
    """Build a parameterized metadata equality filter.

    Returns ``("", [])`` for an empty filter, otherwise a ``WHERE`` clause of
    ``metadata->>$k = $v`` conditions joined by ``AND`` and the parameters
    to bind, numbered from ``start_index``. A ``None`` value becomes
    ``metadata->>$k IS NULL``.
    """
    if not filter:
        return "", []

    conditions = []
    params: List[Any] = []
    for key, value in filter.items():
        key_index = start_index + len(params)
        if value is None:
            # JSON null (or a missing key) comes back from ->> as SQL NULL
            conditions.append(f"metadata->>${key_index} IS NULL")
            params.append(str(key))
            continue
        conditions.append(f"metadata->>${key_index} = ${key_index + 1}")
        params.extend([str(key), _filter_value(value)])

    return "WHERE " + " AND ".join(conditions), params


def ivfflat_lists(dimensions: int) -> int:
    """Pick the IVFFlat ``lists`` parameter for a column size."""
    if dimensions > 0:
        return max(10, min(dimensions // 10, 1000))
    return DEFAULT_IVFFLAT_LISTS


class PgVectorStore(VectorStore):
    """PgVector implementation of vector store."""

    backend = "pgvector"

    def __init__(
        self,
        config: PgVectorConfig,
        logger: Optional[Any] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        """Validate configuration; nothing is connected until ``initialize()``.

        Parameters
        - config: ``PgVectorConfig`` with at least ``dsn``
        - logger: Optional structlog logger; defaults to ``vector_store.pgvector``
        - metrics: Optional ``MetricsCollector``
        """
        super().__init__()

        if not config.dsn:
            raise ConfigurationError("connection string is required")
        if not config.table_name:
            raise ConfigurationError("table name cannot be empty")

        index_type = (config.index_type or "").lower()
        if index_type and index_type not in INDEX_TYPES:
            raise ConfigurationError(
                f"unsupported index type: {config.index_type} (use 'hnsw' or 'ivfflat')"
            )
        if config.distance not in DISTANCE_OPERATORS:
            raise ConfigurationError(
                f"unsupported distance: {config.distance} "
                f"(use one of {', '.join(DISTANCE_OPERATORS)})"
            )
        if config.dimensions < 0:
            raise ConfigurationError(f"dimensions cannot be negative, got {config.dimensions}")
        if config.max_conns <= 0 or config.min_conns < 0 or config.min_conns > config.max_conns:
            raise ConfigurationError(
                f"invalid pool size: min_conns={config.min_conns}, max_conns={config.max_conns}"
            )

        self.config = config
        self.table_name = config.table_name
        self.index_type = index_type
        self._table = quote_identifier(config.table_name)
        self._operator, self._opclass = DISTANCE_OPERATORS[config.distance]
        self._logger = logger or get_logger("vector_store.pgvector")
        self._metrics = metrics
        self._pool: Optional[Pool] = None

        self._upsert_sql = f"""
            INSERT INTO {self._table} (id, embedding, metadata, updated_at)
            VALUES ($1, $2, $3, NOW())
            ON CONFLICT (id) DO UPDATE SET
                embedding = EXCLUDED.embedding,
                metadata = EXCLUDED.metadata,
                updated_at = NOW()
        """

    async def _init_connection(self, conn: Connection) -> None:
        """Register text codecs for ``vector`` and JSON codecs for ``jsonb``."""
        await conn.set_type_codec(
            "jsonb",
            encoder=json.dumps,
            decoder=json.loads,
            schema="pg_catalog",
        )
        await conn.set_type_codec(
            "vector",
            encoder=vector_to_string,
            decoder=string_to_vector,
            schema=self.config.vector_schema,
            format="text",
        )

    async def initialize(self) -> None:
        """Ensure extension, table and index exist, then open the pool.

        Concurrent first-time setup from several processes relies on the
        ``IF NOT EXISTS`` guards of the DDL statements.
        """
        if self._state == StoreState.INITIALIZED:
            return
        if self._state == StoreState.CLOSED:
            raise VectorStoreConnectionError("pgvector store is closed")

        try:
            conn = await asyncpg.connect(self.config.dsn, timeout=self.config.connect_timeout)
        except Exception as e:
            self._logger.error("Failed to connect to PostgreSQL", error=str(e))
            raise VectorStoreConnectionError(f"Failed to connect: {e}") from e

        try:
            await self._setup_schema(conn)
        except Exception as e:
            self._logger.error("Failed to initialize pgvector schema", table=self.table_name, error=str(e))
            raise VectorStoreError(f"Failed to initialize: {e}") from e
        finally:
            await conn.close()

        try:
            self._pool = await asyncpg.create_pool(
                self.config.dsn,
                min_size=self.config.min_conns,
                max_size=self.config.max_conns,
                max_queries=self.config.max_queries,
                max_inactive_connection_lifetime=self.config.max_inactive_connection_lifetime,
                command_timeout=self.config.command_timeout,
                timeout=self.config.connect_timeout,
                init=self._init_connection,
            )
        except Exception as e:
            self._logger.error("Failed to create PgVector connection pool", error=str(e))
            raise VectorStoreConnectionError(f"Failed to create connection pool: {e}") from e

        self._state = StoreState.INITIALIZED
        self._logger.info(
            "PgVector store initialized",
            table=self.table_name,
            max_conns=self.config.max_conns
        )

    async def _setup_schema(self, conn: Connection) -> None:
        await conn.execute("CREATE EXTENSION IF NOT EXISTS vector")

        dim_clause = f"({self.config.dimensions})" if self.config.dimensions > 0 else ""
        await conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {self._table} (
                id TEXT PRIMARY KEY,
                embedding vector{dim_clause} NOT NULL,
                metadata JSONB,
                created_at TIMESTAMPTZ DEFAULT NOW(),
                updated_at TIMESTAMPTZ DEFAULT NOW()
            )
        """)

        if self.index_type:
            try:
                await self._create_index(conn)
            except Exception as e:
                # The index can be added later; searches still work without it
                self._logger.warning(
                    "Failed to create vector index",
                    index_type=self.index_type,
                    table=self.table_name,
                    error=str(e)
                )

    def _index_sql(self) -> str:
        index_name = quote_identifier(f"{self.table_name}_embedding_idx")
        if self.index_type == "hnsw":
            return f"""
                CREATE INDEX IF NOT EXISTS {index_name} ON {self._table}
                USING hnsw (embedding {self._opclass})
            """
        return f"""
            CREATE INDEX IF NOT EXISTS {index_name} ON {self._table}
            USING ivfflat (embedding {self._opclass}) WITH (lists = {ivfflat_lists(self.config.dimensions)})
        """

    async def _create_index(self, conn: Connection) -> None:
        await conn.execute(self._index_sql())
        self._logger.info(
            "Created vector index",
            index_type=self.index_type,
            name=f"{self.table_name}_embedding_idx"
        )

    async def _execute_query(
        self,
        query: str,
        *args: Any,
        fetch: bool = False,
        fetch_val: bool = False
    ) -> Any:
        """Execute a query with error handling.

        The ``fetch``/``fetch_val`` flags control how results are retrieved.
        All failures are wrapped in ``VectorStoreQueryError`` for consistency.
        """
        self._ensure_initialized()
        try:
            async with self._pool.acquire() as conn:
                if fetch_val:
                    return await conn.fetchval(query, *args)
                if fetch:
                    return await conn.fetch(query, *args)
                return await conn.execute(query, *args)
        except Exception as e:
            self._logger.error("Query execution failed", query=" ".join(query.split()), error=str(e))
            raise VectorStoreQueryError(f"Query failed: {e}") from e

    async def upsert(self, vectors: List[Vector]) -> None:
        """Insert or replace vectors in one ``executemany`` batch."""
        if not vectors:
            return

        validate_vectors(vectors)
        self._ensure_initialized()

        started = time.perf_counter()
        rows = [(v.id, list(v.values), v.metadata) for v in vectors]

        try:
            async with self._pool.acquire() as conn:
                await conn.executemany(self._upsert_sql, rows)
        except Exception as e:
            self._logger.error("Batch upsert failed", count=len(vectors), error=str(e))
            raise VectorStoreQueryError(f"Failed to upsert {len(vectors)} vectors: {e}") from e

        duration = time.perf_counter() - started
        self._logger.debug("Upserted vectors to pgvector", count=len(vectors), duration_ms=duration * 1000)

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
        """Similarity search using the configured distance operator."""
        validate_query(vector, limit)
        self._ensure_initialized()

        started = time.perf_counter()
        where_clause, filter_args = build_where_clause(filter, start_index=3)
        query = f"""
            SELECT id, embedding {self._operator} $1 AS distance, metadata
            FROM {self._table}
            {where_clause}
            ORDER BY distance
            LIMIT $2
        """

        rows = await self._execute_query(query, list(vector), limit, *filter_args, fetch=True)

        matches = [
            VectorMatch(
                id=row["id"],
                score=distance_to_score(float(row["distance"]), self.config.distance),
                metadata=row["metadata"] or {},
            )
            for row in rows
        ]

        duration = time.perf_counter() - started
        self._logger.debug("Queried pgvector", results=len(matches), limit=limit, duration_ms=duration * 1000)

        if self._metrics is not None:
            self._metrics.record_vector_store_operation(
                self.backend, "query", duration=duration, results=len(matches)
            )

        return matches

    async def delete(self, ids: List[str]) -> None:
        """Delete vectors by id; the number actually removed is only logged."""
        if not ids:
            return

        started = time.perf_counter()
        status = await self._execute_query(
            f"DELETE FROM {self._table} WHERE id = ANY($1::text[])",
            list(ids)
        )
        deleted = _affected_rows(status)

        self._logger.debug(
            "Deleted vectors from pgvector",
            requested=len(ids),
            deleted=deleted,
            duration_ms=(time.perf_counter() - started) * 1000
        )

        if self._metrics is not None:
            self._metrics.record_vector_store_operation(
                self.backend, "delete", duration=time.perf_counter() - started, items=deleted
            )

    async def count(self) -> int:
        """Count rows in the vector table."""
        result = await self._execute_query(f"SELECT COUNT(*) FROM {self._table}", fetch_val=True)
        return int(result or 0)

    async def health_check(self) -> bool:
        """Check if the vector store is healthy."""
        try:
            await self._execute_query("SELECT 1", fetch_val=True)
            return True
        except VectorStoreError as e:
            self._logger.error("Health check failed", error=str(e))
            return False

    async def close(self) -> None:
        """Close the connection pool."""
        if self._state == StoreState.CLOSED:
            return
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
        self._state = StoreState.CLOSED
        self._logger.info("Closed PgVector connection pool")


def _affected_rows(status: Any) -> int:
    # asyncpg returns the command tag, e.g. "DELETE 3"
    try:
        return int(str(status).split()[-1])
    except (ValueError, IndexError):
        return 0


def create_pgvector_store(dsn: str, **kwargs: Any) -> PgVectorStore:
    """Create a PgVector store instance (not yet initialized)."""
    return PgVectorStore(PgVectorConfig(dsn=dsn, **kwargs))
