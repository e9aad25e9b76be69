"""Embedding model adapters.

Primary components:
- ``base``: abstract ``EmbeddingModel`` interface and ``EmbeddingError``.
- ``openai``: OpenAI embeddings API implementation (sub-batches large inputs).
- ``cohere``: Cohere embed API implementation.
- ``factory``: helpers to construct a model from typed config or env.
"""

from .base import EmbeddingError, EmbeddingModel
from .cohere import CohereEmbeddings
from .factory import (
    EmbeddingProviderType,
    create_embedding_model,
    create_embedding_model_from_env,
)
from .openai import OpenAIEmbeddings

__all__ = [
    "EmbeddingError",
    "EmbeddingModel",
    "CohereEmbeddings",
    "OpenAIEmbeddings",
    "EmbeddingProviderType",
    "create_embedding_model",
    "create_embedding_model_from_env",
]
