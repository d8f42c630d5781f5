"""Local text-embedding model used for transaction similarity search.

Loads a tokenizer and the token-embedding matrix of a safetensors checkpoint
once, then embeds text by mean-pooling token vectors and L2-normalising the
result. The loaded model is immutable and shared read-only by all requests.
"""

import asyncio
from collections.abc import Sequence
from pathlib import Path

import numpy as np
import structlog
from safetensors.numpy import load_file
from tokenizers import Tokenizer

from .errors import EmbeddingError

logger = structlog.get_logger()

EMBED_TOKENS_KEY = "embed_tokens.weight"


def to_vector_literal(vector: Sequence[float]) -> str:
    """Render a vector as a pgvector literal, e.g. ``[0.1,0.2,0.3]``."""
    return "[" + ",".join(repr(float(v)) for v in vector) + "]"


class EmbeddingModel:
    """Tokenizer plus token-embedding weights, loaded from a model directory."""

    def __init__(self, model_path: str | Path) -> None:
        self._model_path = Path(model_path)
        self._tokenizer: Tokenizer | None = None
        self._weights: np.ndarray | None = None
        self._load_error: str | None = None

    @property
    def is_loaded(self) -> bool:
        return self._tokenizer is not None and self._weights is not None

    @property
    def dimension(self) -> int | None:
        return None if self._weights is None else int(self._weights.shape[1])

    @property
    def load_error(self) -> str | None:
        return self._load_error

    def load(self) -> None:
        """Load tokenizer and weights. Raises EmbeddingError if either is missing."""
        tokenizer_file = self._model_path / "tokenizer.json"
        weights_file = self._model_path / "model.safetensors"

        try:
            if not tokenizer_file.exists():
                raise EmbeddingError(f"Tokenizer file not found: {tokenizer_file}")
            if not weights_file.exists():
                raise EmbeddingError(f"Model file not found: {weights_file}")

            tokenizer = self._load_tokenizer(tokenizer_file)
            tensors = load_file(str(weights_file))
            weights = next(
                (t for name, t in tensors.items() if name.endswith(EMBED_TOKENS_KEY)),
                None,
            )
            if weights is None:
                raise EmbeddingError(f"{EMBED_TOKENS_KEY} not found in {weights_file}")
        except EmbeddingError as e:
            self._load_error = str(e)
            logger.error("embedding_model_load_failed", path=str(self._model_path), error=str(e))
            raise
        except Exception as e:
            self._load_error = str(e)
            logger.error("embedding_model_load_failed", path=str(self._model_path), error=str(e))
            raise EmbeddingError(f"Failed to load embedding model: {e}") from e

        self.use(tokenizer, weights)
        logger.info(
            "embedding_model_loaded",
            path=str(self._model_path),
            vocab_size=int(weights.shape[0]),
            dimension=int(weights.shape[1]),
        )

    def _load_tokenizer(self, tokenizer_file: Path) -> Tokenizer:
        """Load ``tokenizer.json``, retrying with ``tokenizer.model`` if it will not parse."""
        try:
            return Tokenizer.from_file(str(tokenizer_file))
        except Exception as e:
            fallback_file = self._model_path / "tokenizer.model"
            logger.warning(
                "tokenizer_json_unreadable",
                path=str(tokenizer_file),
                fallback=str(fallback_file),
                error=str(e),
            )
            if not fallback_file.exists():
                raise EmbeddingError(f"Could not load any tokenizer file: {e}") from e

        try:
            return Tokenizer.from_file(str(fallback_file))
        except Exception as e:
            raise EmbeddingError(f"Failed to load tokenizer.model: {e}") from e

    def use(self, tokenizer: Tokenizer, weights: np.ndarray) -> None:
        """Install an already-loaded tokenizer and embedding matrix."""
        self._tokenizer = tokenizer
        self._weights = np.asarray(weights, dtype=np.float32)
        self._weights.setflags(write=False)
        self._load_error = None

    def embed(self, text: str) -> list[float]:
        """Synchronously embed ``text`` into a unit-length vector."""
        if not self.is_loaded:
            raise EmbeddingError("Embedding model is not loaded")

        try:
            token_ids = self._tokenizer.encode(text, add_special_tokens=True).ids
        except Exception as e:
            raise EmbeddingError(f"Tokenization error: {e}") from e
        if not token_ids:
            raise EmbeddingError("Text produced no tokens")

        vocab_size = self._weights.shape[0]
        if max(token_ids) >= vocab_size:
            raise EmbeddingError(f"Token id out of range for vocabulary of {vocab_size}")

        pooled = self._weights[np.asarray(token_ids)].mean(axis=0)
        norm = float(np.linalg.norm(pooled))
        if norm == 0.0 or not np.isfinite(norm):
            raise EmbeddingError("Embedding has zero or non-finite norm")

        return (pooled / norm).astype(np.float32).tolist()

    async def generate_embedding(self, text: str) -> list[float]:
        """Embed ``text`` off the event loop."""
        return await asyncio.to_thread(self.embed, text)
