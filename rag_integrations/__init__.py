"""Embedding and vector store adapters for retrieval-augmented generation.

Subpackages:
- ``rag_integrations.common``: configuration, logging, metrics, errors, and
  the shared ``Vector``/``VectorMatch`` data model.
- ``rag_integrations.embeddings``: the ``EmbeddingModel`` interface with
  OpenAI and Cohere implementations.
- ``rag_integrations.vector_store``: the ``VectorStore`` interface with
  pgvector and Weaviate implementations.

Notes:
- Adapters are thin pass-throughs to vendor SDKs; an orchestrator wires one
  embedding model and one vector store together.
"""

__version__ = "0.1.0"
