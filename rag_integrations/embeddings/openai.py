"""OpenAI implementation of the embedding model.

Wraps ``openai.AsyncOpenAI`` embeddings. The model's vector size comes from
a static table, so unsupported models are rejected when the adapter is built
rather than on the first call.

Batching
- The API accepts at most ``MAX_BATCH_SIZE`` inputs per request; longer
  inputs are sent as sequential sub-batches and concatenated in order
- A failing sub-batch aborts the whole call: no partial results, no retry

Empty input is rejected with ``InputValidationError``; ``CohereEmbeddings``
returns an empty list instead. Callers that mix providers should not rely on
either behaviour.
"""

import time
from typing import Any, Dict, List, Optional

import httpx
from openai import AsyncOpenAI, OpenAIError

from rag_integrations.common.config import OpenAIEmbeddingConfig
from rag_integrations.common.errors import ConfigurationError, InputValidationError
from rag_integrations.common.logging import get_logger
from rag_integrations.common.metrics import MetricsCollector
from rag_integrations.common.types import Vector, to_float64

from .base import EmbeddingError, EmbeddingModel

MODEL_TEXT_EMBEDDING_3_SMALL = "text-embedding-3-small"
MODEL_TEXT_EMBEDDING_3_LARGE = "text-embedding-3-large"
MODEL_TEXT_EMBEDDING_ADA_002 = "text-embedding-ada-002"

MODEL_DIMENSIONS = {
    MODEL_TEXT_EMBEDDING_3_SMALL: 1536,
    MODEL_TEXT_EMBEDDING_3_LARGE: 3072,
    MODEL_TEXT_EMBEDDING_ADA_002: 1536,
}

# Models accepting the ``dimensions`` request field
SHORTENABLE_MODELS = (MODEL_TEXT_EMBEDDING_3_SMALL, MODEL_TEXT_EMBEDDING_3_LARGE)

MAX_BATCH_SIZE = 2048


class OpenAIEmbeddings(EmbeddingModel):
    """Embedding model backed by OpenAI's embeddings API."""

    provider = "openai"

    def __init__(
        self,
        config: OpenAIEmbeddingConfig,
        logger: Optional[Any] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        """Validate configuration and build the API client.

        Parameters
        - config: ``OpenAIEmbeddingConfig`` with at least ``api_key``
        - logger: Optional structlog logger; defaults to ``embeddings.openai``
        - metrics: Optional ``MetricsCollector``

        Raises ``ConfigurationError`` for a missing key, an unknown model, or
        an unusable ``dimensions`` override.
        """
        if not config.api_key:
            raise ConfigurationError("OpenAI API key is required")

        native_dimensions = MODEL_DIMENSIONS.get(config.model)
        if native_dimensions is None:
            raise ConfigurationError(
                f"Unsupported OpenAI embedding model: {config.model} "
                f"(supported: {', '.join(sorted(MODEL_DIMENSIONS))})"
            )

        dimensions = native_dimensions
        if config.dimensions is not None and config.dimensions != native_dimensions:
            if config.model not in SHORTENABLE_MODELS:
                raise ConfigurationError(
                    f"Model {config.model} does not support custom dimensions"
                )
            if not 0 < config.dimensions <= native_dimensions:
                raise ConfigurationError(
                    f"dimensions must be between 1 and {native_dimensions} "
                    f"for {config.model}, got {config.dimensions}"
                )
            dimensions = config.dimensions

        self.config = config
        self._model = config.model
        self._dimensions = dimensions
        self._logger = logger or get_logger("embeddings.openai")
        self._metrics = metrics

        self._http_client = httpx.AsyncClient(timeout=config.timeout)
        self._client = AsyncOpenAI(
            api_key=config.api_key,
            base_url=config.base_url,
            organization=config.organization,
            timeout=config.timeout,
            http_client=self._http_client,
        )
        self._closed = False

        self._logger.info(
            "OpenAI embeddings initialized",
            model=self._model,
            dimensions=self._dimensions
        )

    @property
    def model(self) -> str:
        return self._model

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, texts: List[str]) -> List[Vector]:
        """Generate embeddings for ``texts``.

        Inputs longer than ``MAX_BATCH_SIZE`` are split into sequential
        requests. Result ids are ``embed-<position>`` over the whole input.
        """
        if not texts:
            raise InputValidationError("texts cannot be empty")

        if len(texts) > MAX_BATCH_SIZE:
            return await self._embed_batches(texts, MAX_BATCH_SIZE)

        return await self._embed_request(texts, offset=0)

    async def _embed_batches(self, texts: List[str], batch_size: int) -> List[Vector]:
        """Embed ``texts`` in sequential chunks of ``batch_size``."""
        vectors: List[Vector] = []

        for start in range(0, len(texts), batch_size):
            end = min(start + batch_size, len(texts))
            try:
                vectors.extend(await self._embed_request(texts[start:end], offset=start))
            except EmbeddingError as e:
                raise EmbeddingError(f"Failed to embed batch {start}-{end}: {e}") from e

        self._logger.debug(
            "Embedded texts in batches",
            count=len(texts),
            batches=(len(texts) + batch_size - 1) // batch_size
        )
        return vectors

    async def _embed_request(self, texts: List[str], offset: int) -> List[Vector]:
        """Issue one embeddings request and convert the response."""
        started = time.perf_counter()

        request: Dict[str, Any] = {
            "model": self._model,
            "input": texts,
        }
        if self._model in SHORTENABLE_MODELS:
            request["dimensions"] = self._dimensions

        try:
            response = await self._client.embeddings.create(**request)
        except (OpenAIError, httpx.HTTPError) as e:
            self._record_metrics(self._metrics, started, len(texts), failed=True)
            self._logger.error(
                "OpenAI embeddings request failed",
                model=self._model,
                count=len(texts),
                error=str(e)
            )
            raise EmbeddingError(f"Failed to create embeddings: {e}") from e

        # The API may return items out of order; ``index`` is authoritative
        data = sorted(response.data, key=lambda item: item.index)
        if len(data) != len(texts):
            self._record_metrics(self._metrics, started, len(texts), failed=True)
            raise EmbeddingError(
                f"Mismatch in embeddings count: expected {len(texts)}, got {len(data)}"
            )

        vectors = [
            Vector(id=f"embed-{offset + item.index}", values=to_float64(item.embedding))
            for item in data
        ]

        tokens = response.usage.total_tokens if response.usage is not None else None
        self._record_metrics(self._metrics, started, len(texts), tokens=tokens)

        self._logger.debug(
            "Generated embeddings",
            model=self._model,
            count=len(texts),
            tokens=tokens,
            duration_ms=(time.perf_counter() - started) * 1000
        )
        return vectors

    async def close(self) -> None:
        """Close the HTTP client shared by all calls."""
        if self._closed:
            return
        await self._client.close()
        self._closed = True
        self._logger.info("OpenAI embeddings closed", model=self._model)
