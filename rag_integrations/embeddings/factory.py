"""Embedding model factory.

Centralizes creation of concrete ``EmbeddingModel`` providers so callers
don't depend on implementation details.
"""

from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from rag_integrations.common.config import CohereEmbeddingConfig, OpenAIEmbeddingConfig
from rag_integrations.common.errors import ConfigurationError
from rag_integrations.common.logging import get_logger
from rag_integrations.common.metrics import MetricsCollector

from .base import EmbeddingModel
from .cohere import CohereEmbeddings
from .openai import OpenAIEmbeddings

logger = get_logger("embeddings.factory")


class EmbeddingProviderType(Enum):
    """Supported embedding providers."""
    OPENAI = "openai"
    COHERE = "cohere"


_CONFIG_CLASSES = {
    EmbeddingProviderType.OPENAI: OpenAIEmbeddingConfig,
    EmbeddingProviderType.COHERE: CohereEmbeddingConfig,
}


def _provider_type(provider: Union[str, EmbeddingProviderType]) -> EmbeddingProviderType:
    if isinstance(provider, EmbeddingProviderType):
        return provider
    try:
        return EmbeddingProviderType(provider)
    except ValueError:
        raise ConfigurationError(f"Unsupported embedding provider: {provider}") from None


def create_embedding_model(
    provider: Union[str, EmbeddingProviderType],
    config: Optional[Union[OpenAIEmbeddingConfig, CohereEmbeddingConfig]] = None,
    metrics: Optional[MetricsCollector] = None,
    logger: Optional[Any] = None,
    **overrides: Any
) -> EmbeddingModel:
    """Create an embedding model.

    Parameters
    - provider: ``openai``/``cohere`` or an ``EmbeddingProviderType``
    - config: Provider config; read from the environment when omitted
    - overrides: Config fields replacing values from ``config``/environment
    """
    provider_type = _provider_type(provider)
    config_class = _CONFIG_CLASSES[provider_type]

    if config is None:
        config = config_class(**overrides)
    elif overrides:
        config = config.model_copy(update=overrides)

    if provider_type == EmbeddingProviderType.OPENAI:
        return OpenAIEmbeddings(config, logger=logger, metrics=metrics)
    return CohereEmbeddings(config, logger=logger, metrics=metrics)


def create_embedding_model_from_env(
    env_config: Dict[str, str],
    metrics: Optional[MetricsCollector] = None
) -> EmbeddingModel:
    """Create an embedding model from a flat environment mapping.

    ``RAG_EMBEDDING_PROVIDER`` selects the provider (default ``openai``);
    the remaining settings use the provider's ``RAG_OPENAI_*`` or
    ``RAG_COHERE_*`` names.
    """
    provider_type = _provider_type(env_config.get("RAG_EMBEDDING_PROVIDER", "openai"))
    prefix = f"RAG_{provider_type.value.upper()}_"

    fields = {
        key[len(prefix):].lower(): value
        for key, value in env_config.items()
        if key.startswith(prefix) and value is not None
    }

    config_class = _CONFIG_CLASSES[provider_type]
    try:
        config = config_class.model_validate(fields)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid {provider_type.value} settings: {e}") from e

    logger.info("Creating embedding model from environment", provider=provider_type.value)
    return create_embedding_model(provider_type, config=config, metrics=metrics)
