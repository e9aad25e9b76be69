"""Metrics collection for embedding models and vector stores.

Provides a thin convenience wrapper around ``prometheus_client`` so adapters
record embedding and vector store metrics with consistent names and labels.

Design notes
- Metrics and labels are predeclared to avoid cardinality explosions
- Each collector owns its ``CollectorRegistry`` (inject one in tests)
- Adapters accept ``metrics=None``; every recording helper is a no-op path
  for them, and recording never raises into adapter code
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
import structlog

logger = structlog.get_logger("metrics")

RESULT_COUNT_BUCKETS = (0, 1, 5, 10, 25, 50, 100, 250, 500, 1000)


class MetricsCollector:
    """Centralized metrics collection for the adapters.

    Parameters
    - service_name: Logical name of the process embedding the adapters
    - registry: Optional custom ``CollectorRegistry`` (e.g. for testing)
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()

        # Embedding metrics
        self.embedding_requests = Counter(
            'rag_embedding_requests_total',
            'Total embedding API calls',
            ['provider', 'model'],
            registry=self.registry
        )

        self.embedding_texts = Counter(
            'rag_embedding_texts_total',
            'Total texts embedded',
            ['provider', 'model'],
            registry=self.registry
        )

        self.embedding_tokens = Counter(
            'rag_embedding_tokens_total',
            'Total tokens billed by the embedding provider',
            ['provider', 'model'],
            registry=self.registry
        )

        self.embedding_duration = Histogram(
            'rag_embedding_duration_seconds',
            'Embedding call duration',
            ['provider', 'model'],
            registry=self.registry
        )

        # Vector store metrics
        self.vector_store_operations = Counter(
            'rag_vector_store_operations_total',
            'Total vector store operations',
            ['backend', 'operation'],
            registry=self.registry
        )

        self.vector_store_items = Counter(
            'rag_vector_store_items_total',
            'Total vectors written or deleted',
            ['backend', 'operation'],
            registry=self.registry
        )

        self.vector_store_duration = Histogram(
            'rag_vector_store_duration_seconds',
            'Vector store operation duration',
            ['backend', 'operation'],
            registry=self.registry
        )

        self.vector_store_query_results = Histogram(
            'rag_vector_store_query_results',
            'Number of matches returned per query',
            ['backend'],
            buckets=RESULT_COUNT_BUCKETS,
            registry=self.registry
        )

    def record_embedding(
        self,
        provider: str,
        model: str,
        texts: int,
        duration: float,
        tokens: Optional[int] = None
    ) -> None:
        """Record one embedding call.

        duration is expected in seconds to match Prometheus histogram units.
        """
        try:
            self.embedding_requests.labels(provider=provider, model=model).inc()
            self.embedding_texts.labels(provider=provider, model=model).inc(texts)
            if tokens:
                self.embedding_tokens.labels(provider=provider, model=model).inc(tokens)
            self.embedding_duration.labels(provider=provider, model=model).observe(duration)
        except Exception as e:
            logger.warning("Failed to record embedding metrics", provider=provider, error=str(e))

    def record_embedding_duration(self, provider: str, model: str, duration: float) -> None:
        """Record the duration of a failed embedding call."""
        try:
            self.embedding_duration.labels(provider=provider, model=model).observe(duration)
        except Exception as e:
            logger.warning("Failed to record embedding metrics", provider=provider, error=str(e))

    def record_vector_store_operation(
        self,
        backend: str,
        operation: str,
        duration: Optional[float] = None,
        items: Optional[int] = None,
        results: Optional[int] = None
    ) -> None:
        """Record a vector store operation.

        Parameters
        - backend: ``pgvector`` or ``weaviate``
        - operation: ``upsert``, ``query``, ``delete`` or ``count``
        - duration: Elapsed seconds, when measured
        - items: Vectors written or deleted
        - results: Matches returned by a query
        """
        try:
            self.vector_store_operations.labels(backend=backend, operation=operation).inc()
            if duration is not None:
                self.vector_store_duration.labels(backend=backend, operation=operation).observe(duration)
            if items:
                self.vector_store_items.labels(backend=backend, operation=operation).inc(items)
            if results is not None:
                self.vector_store_query_results.labels(backend=backend).observe(results)
        except Exception as e:
            logger.warning(
                "Failed to record vector store metrics",
                backend=backend,
                operation=operation,
                error=str(e)
            )

    def get_metrics(self) -> str:
        """Get metrics in Prometheus exposition format for scraping."""
        return generate_latest(self.registry).decode('utf-8')


# Global metrics collector instance
_metrics_collector: Optional[MetricsCollector] = None


def get_metrics_collector(service_name: str) -> MetricsCollector:
    """Get or create the process-wide metrics collector.

    Returns a singleton to avoid registering the same metrics twice.
    """
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector(service_name)
    return _metrics_collector
