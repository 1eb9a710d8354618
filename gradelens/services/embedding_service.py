"""
Sentence-embedding service used for plagiarism detection
"""

import asyncio
import re
from collections.abc import Callable
from typing import Any

import numpy as np
import structlog

from gradelens.core.config import settings
from gradelens.core.exceptions import EmbeddingGenerationError, EmptyInputError

logger = structlog.get_logger()

_WHITESPACE = re.compile(r"\s+")


def load_sentence_transformer(model_name: str, device: str | None = None) -> Any:
    """Load a sentence-transformers model (mean pooling for the MiniLM family)"""
    from sentence_transformers import SentenceTransformer

    return SentenceTransformer(model_name, device=device)


class EmbeddingService:
    """
    Turns submission text into unit-length embedding vectors

    The model is loaded on first use and kept for the life of the service.
    Construct one instance at startup and share it; concurrent first calls
    load the model once.
    """

    def __init__(
        self,
        model_name: str | None = None,
        *,
        device: str | None = None,
        max_chars: int | None = None,
        timeout: float | None = None,
        load_timeout: float | None = None,
        model_loader: Callable[[str, str | None], Any] | None = None
    ) -> None:
        self.model_name = model_name or settings.embedding.model_name
        self.device = device or settings.embedding.device
        self.max_chars = max_chars if max_chars is not None else settings.embedding.max_chars
        self.timeout = timeout if timeout is not None else settings.embedding.timeout
        self.load_timeout = (
            load_timeout if load_timeout is not None else settings.embedding.load_timeout
        )
        self._model_loader = model_loader or load_sentence_transformer
        self._model: Any = None
        self._lock = asyncio.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    def preprocess(self, text: str) -> str:
        """Collapse whitespace, trim, and cut to the character limit"""
        return _WHITESPACE.sub(" ", text).strip()[:self.max_chars]

    async def get_model(self) -> Any:
        """Return the cached model, loading it on the first call"""
        if self._model is None:
            async with self._lock:
                if self._model is None:
                    logger.info("Loading embedding model", model=self.model_name)
                    self._model = await asyncio.to_thread(
                        self._model_loader, self.model_name, self.device
                    )
                    logger.info("Embedding model loaded", model=self.model_name)
        return self._model

    async def embed(self, text: str) -> list[float]:
        """
        Embed text into a fixed-length, L2-normalized vector

        Raises:
            EmptyInputError: if nothing is left after preprocessing
            EmbeddingGenerationError: if the model fails to load or encode, or
                does not answer within its load or encode timeout
        """
        clean_text = self.preprocess(text)
        if not clean_text:
            raise EmptyInputError("Empty text provided for embedding")

        model = await self.ensure_model()

        try:
            encoded = await asyncio.wait_for(
                asyncio.to_thread(
                    model.encode,
                    clean_text,
                    convert_to_numpy=True,
                    normalize_embeddings=True,
                    show_progress_bar=False,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error("Embedding timed out", model=self.model_name, timeout=self.timeout)
            raise EmbeddingGenerationError(
                f"Embedding model did not respond within {self.timeout}s"
            ) from e
        except Exception as e:
            logger.error("Error generating embedding", model=self.model_name, error=str(e))
            raise EmbeddingGenerationError("Failed to generate text embedding") from e

        vector = np.asarray(encoded, dtype=np.float64).ravel()
        if vector.size == 0 or not np.all(np.isfinite(vector)):
            raise EmbeddingGenerationError("Embedding model returned an unusable vector")

        return vector.tolist()

    async def ensure_model(self) -> Any:
        """
        Return the model, loading it within the load timeout

        A load that times out leaves the service unloaded; the next call retries.
        """
        try:
            return await asyncio.wait_for(self.get_model(), timeout=self.load_timeout)
        except asyncio.TimeoutError as e:
            logger.error("Embedding model load timed out",
                         model=self.model_name,
                         timeout=self.load_timeout)
            raise EmbeddingGenerationError(
                f"Embedding model did not load within {self.load_timeout}s"
            ) from e
        except Exception as e:
            logger.error("Error loading embedding model", model=self.model_name, error=str(e))
            raise EmbeddingGenerationError("Failed to load embedding model") from e
