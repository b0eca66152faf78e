"""Embedding model management."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

import numpy as np
from pydantic import BaseModel, ConfigDict, field_validator

from coderag.errors import EmbeddingError
from coderag.utils.text import truncate_to_token_limit

if TYPE_CHECKING:
    from sentence_transformers import SentenceTransformer

DEFAULT_MODEL = "sentence-transformers/all-MiniLM-L6-v2"

logger = logging.getLogger(__name__)


def _detect_device() -> str | None:
    """Pick ``cuda`` or ``mps`` when torch reports one, otherwise let the model decide."""
    try:
        import torch

        if torch.cuda.is_available():
            logger.debug("CUDA GPU detected: %s", torch.cuda.get_device_name(0))
            return "cuda"
        if hasattr(torch.backends, "mps") and torch.backends.mps.is_available():
            logger.debug("Apple MPS GPU detected")
            return "mps"
    except ImportError:
        logger.debug("PyTorch not available for device detection")
    return None


class EmbeddingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", protected_namespaces=())

    model_name: str = DEFAULT_MODEL
    batch_size: int = 32
    normalize: bool = True
    device: str | None = None
    max_input_tokens: int = 512

    @field_validator("batch_size", "max_input_tokens")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value


class EmbeddingModel:
    """Thin wrapper around `SentenceTransformer` implementing the embedding provider.

    The model is loaded by :meth:`initialize` and released by :meth:`dispose` so a
    single instance can be created at process start and handed to the pipeline.
    """

    name = "sentence-transformers"

    def __init__(self, config: EmbeddingConfig | None = None) -> None:
        self.config = config or EmbeddingConfig()
        self._model: SentenceTransformer | None = None
        self._dimension: int | None = None

    @property
    def dimension(self) -> int:
        if self._dimension is None:
            raise EmbeddingError("Embedding model not initialized")
        return self._dimension

    @property
    def initialized(self) -> bool:
        return self._model is not None

    def initialize(self) -> None:
        if self._model is not None:
            return
        from sentence_transformers import SentenceTransformer

        device = self.config.device or _detect_device()
        logger.info("Loading embedding model %s (device: %s)", self.config.model_name, device or "auto")
        self._model = SentenceTransformer(self.config.model_name, device=device)
        self._dimension = int(self._model.get_sentence_embedding_dimension())
        logger.info("Model %s loaded, dimension %d", self.config.model_name, self._dimension)

    def embed_batch(self, texts: Sequence[str]) -> np.ndarray:
        """Return float32 embeddings, one row per input text, in input order."""
        if self._model is None:
            raise EmbeddingError("Embedding model not initialized. Call initialize() first.")
        sentences = [truncate_to_token_limit(text, self.config.max_input_tokens) for text in texts]
        if not sentences:
            return np.zeros((0, self.dimension), dtype="float32")
        embeddings = self._model.encode(
            sentences,
            batch_size=self.config.batch_size,
            show_progress_bar=False,
            convert_to_numpy=True,
            normalize_embeddings=self.config.normalize,
        )
        return embeddings.astype("float32", copy=False)

    def embed(self, text: str) -> np.ndarray:
        """Convenience wrapper for single-text embedding."""
        return self.embed_batch([text])[0]

    def dispose(self) -> None:
        self._model = None
