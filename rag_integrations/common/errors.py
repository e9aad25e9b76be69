"""Error taxonomy shared by all adapters.

Three families, matching when a failure can happen:

- ``ConfigurationError``: raised while constructing an adapter (missing key,
  host, model, unsupported option). No partially built adapter is returned.
- ``InputValidationError``: raised per call before anything is sent to the
  backing service (empty text list, empty vector, non-positive limit, empty
  identifier).
- ``UpstreamError``: the vendor SDK, HTTP API, or database failed. Always
  chained to the original exception; never retried by this package.

Backend-specific subclasses live next to their interface
(``embeddings.base.EmbeddingError``, ``vector_store.base.VectorStoreError``).
"""


class IntegrationError(Exception):
    """Base exception for all adapter errors."""
    pass


class ConfigurationError(IntegrationError):
    """Invalid or incomplete adapter configuration."""
    pass


class InputValidationError(IntegrationError, ValueError):
    """Invalid arguments passed to an adapter operation."""
    pass


class UpstreamError(IntegrationError):
    """Failure reported by the backing service or its client library."""
    pass
