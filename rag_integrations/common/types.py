"""Shared data model for embedding models and vector stores.

``Vector`` is what callers hand to ``VectorStore.upsert`` and what
``EmbeddingModel.embed`` returns. ``VectorMatch`` is one similarity search
hit; ``score`` always follows "higher is more similar", whatever distance
metric the backend uses internally.

Vendor SDKs disagree on precision (OpenAI and Weaviate use float32, the rest
of this package float64); ``to_float32``/``to_float64`` do the conversion
through numpy.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

import numpy as np


@dataclass
class Vector:
    """An identifier-tagged embedding with optional metadata."""
    id: str
    values: List[float]
    metadata: Optional[Dict[str, Any]] = None


@dataclass
class VectorMatch:
    """A single similarity search result."""
    id: str
    score: float
    metadata: Dict[str, Any] = field(default_factory=dict)


def to_float32(values: Iterable[float]) -> List[float]:
    """Round values to single precision (returned as Python floats)."""
    return np.asarray(list(values), dtype=np.float32).tolist()


def to_float64(values: Iterable[float]) -> List[float]:
    """Widen values to double precision."""
    return np.asarray(list(values), dtype=np.float64).tolist()
