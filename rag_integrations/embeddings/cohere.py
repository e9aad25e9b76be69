"""Cohere implementation of the embedding model.

Wraps ``cohere.AsyncClient.embed``. There is no default model: the caller
names one and it must be in ``MODEL_DIMENSIONS``.

An empty input list returns ``[]`` without calling the API (``OpenAIEmbeddings``
rejects it instead).
"""

import time
from typing import Any, Dict, List, Optional

import cohere
import httpx
from cohere.core.api_error import ApiError

from rag_integrations.common.config import CohereEmbeddingConfig
from rag_integrations.common.errors import ConfigurationError
from rag_integrations.common.logging import get_logger
from rag_integrations.common.metrics import MetricsCollector
from rag_integrations.common.types import Vector, to_float64

from .base import EmbeddingError, EmbeddingModel

MODEL_DIMENSIONS = {
    "embed-english-v3.0": 1024,
    "embed-multilingual-v3.0": 1024,
    "embed-english-light-v3.0": 384,
    "embed-multilingual-light-v3.0": 384,
    "embed-english-v2.0": 4096,
    "embed-english-light-v2.0": 1024,
    "embed-multilingual-v2.0": 768,
}

INPUT_TYPES = ("search_document", "search_query", "classification", "clustering")


def get_model_dimensions(model: str) -> int:
    """Return the vector size of a Cohere embedding model."""
    try:
        return MODEL_DIMENSIONS[model]
    except KeyError:
        raise ConfigurationError(f"Unsupported Cohere embedding model: {model}") from None


class CohereEmbeddings(EmbeddingModel):
    """Embedding model backed by Cohere's embed endpoint."""

    provider = "cohere"

    def __init__(
        self,
        config: CohereEmbeddingConfig,
        logger: Optional[Any] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        """Validate configuration and build the API client.

        Parameters
        - config: ``CohereEmbeddingConfig`` with ``api_key`` and ``model``
        - logger: Optional structlog logger; defaults to ``embeddings.cohere``
        - metrics: Optional ``MetricsCollector``
        """
        if not config.api_key:
            raise ConfigurationError("Cohere API key cannot be empty")
        if not config.model:
            raise ConfigurationError("Cohere model name cannot be empty")
        if config.input_type not in INPUT_TYPES:
            raise ConfigurationError(
                f"Unsupported Cohere input type: {config.input_type} "
                f"(use one of {', '.join(INPUT_TYPES)})"
            )

        self.config = config
        self._model = config.model
        self._dimensions = get_model_dimensions(config.model)
        self._logger = logger or get_logger("embeddings.cohere")
        self._metrics = metrics

        client_kwargs: Dict[str, Any] = {}
        if config.base_url:
            client_kwargs["base_url"] = config.base_url

        self._http_client = httpx.AsyncClient(timeout=config.timeout)
        self._client = cohere.AsyncClient(
            api_key=config.api_key,
            timeout=config.timeout,
            httpx_client=self._http_client,
            **client_kwargs
        )
        self._closed = False

        self._logger.info(
            "Cohere embeddings initialized",
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
        """Generate embeddings for ``texts`` in a single request.

        Each result carries ``{"model", "text", "index"}`` metadata.
        """
        if not texts:
            return []

        started = time.perf_counter()

        try:
            response = await self._client.embed(
                texts=texts,
                model=self._model,
                input_type=self.config.input_type,
            )
        except (ApiError, httpx.HTTPError) as e:
            self._record_metrics(self._metrics, started, len(texts), failed=True)
            self._logger.error(
                "Cohere embed request failed",
                model=self._model,
                count=len(texts),
                error=str(e)
            )
            raise EmbeddingError(f"Cohere embed request failed: {e}") from e

        embeddings = response.embeddings
        if len(embeddings) != len(texts):
            self._record_metrics(self._metrics, started, len(texts), failed=True)
            raise EmbeddingError(
                f"Mismatch in embeddings count: expected {len(texts)}, got {len(embeddings)}"
            )

        vectors = [
            Vector(
                id=f"cohere-embedding-{i}",
                values=to_float64(embedding),
                metadata={
                    "model": self._model,
                    "text": texts[i],
                    "index": i,
                },
            )
            for i, embedding in enumerate(embeddings)
        ]

        self._record_metrics(
            self._metrics,
            started,
            len(texts),
            tokens=self._billed_input_tokens(response)
        )

        self._logger.debug(
            "Generated Cohere embeddings",
            model=self._model,
            count=len(vectors),
            duration_ms=(time.perf_counter() - started) * 1000
        )
        return vectors

    @staticmethod
    def _billed_input_tokens(response: Any) -> Optional[int]:
        meta = getattr(response, "meta", None)
        billed_units = getattr(meta, "billed_units", None) if meta is not None else None
        input_tokens = getattr(billed_units, "input_tokens", None) if billed_units is not None else None
        return int(input_tokens) if input_tokens is not None else None

    async def close(self) -> None:
        """Close the HTTP client shared by all calls."""
        if self._closed:
            return
        await self._http_client.aclose()
        self._closed = True
        self._logger.info("Cohere embeddings closed", model=self._model)
