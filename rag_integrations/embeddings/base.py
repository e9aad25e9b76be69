"""Base embedding model interface.

Defines the contract the RAG orchestrator depends on, independent of the
provider (OpenAI, Cohere, ...).

All calls are asynchronous; deadlines are the caller's business
(``asyncio.wait_for``). Implementations never retry.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from rag_integrations.common.errors import UpstreamError
from rag_integrations.common.metrics import MetricsCollector
from rag_integrations.common.types import Vector


class EmbeddingModel(ABC):
    """Abstract base class for embedding models.

    Implementations validate their model name at construction, expose a
    fixed ``dimensions`` value, and return one ``Vector`` per input text in
    input order.
    """

    provider: str = "unknown"

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier sent to the provider."""
        pass

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Length of every vector this model returns."""
        pass

    @abstractmethod
    async def embed(self, texts: List[str]) -> List[Vector]:
        """Embed ``texts``, preserving order.

        Raises
        - ``InputValidationError`` for inputs the provider policy rejects
        - ``EmbeddingError`` when the provider call fails
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying HTTP client."""
        pass

    async def __aenter__(self) -> "EmbeddingModel":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _record_metrics(
        self,
        metrics: Optional[MetricsCollector],
        started: float,
        texts: int,
        tokens: Optional[int] = None,
        failed: bool = False
    ) -> None:
        if metrics is None:
            return
        duration = time.perf_counter() - started
        if failed:
            metrics.record_embedding_duration(self.provider, self.model, duration)
        else:
            metrics.record_embedding(self.provider, self.model, texts, duration, tokens=tokens)


class EmbeddingError(UpstreamError):
    """Embedding provider call failed."""
    pass
