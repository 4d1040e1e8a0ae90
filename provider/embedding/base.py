"""
Embedding Provider base
"""
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator, Sequence

import numpy as np

from services.vectordb.errors import EmbeddingError, OperationCancelledError


class EmbeddingBackendProvider(ABC):
    """
    Turns text into fixed length vectors. Implementations are interchangeable;
    callers never check which one is active.
    """
    dimensions: int

    @abstractmethod
    def embed(self, text: str, is_query: bool = False) -> np.ndarray:
        """
        Embed one text into a 1-D array of ``dimensions`` floats
        """
        raise NotImplementedError

    def iter_embed_batch(self, texts: Sequence[str]) -> Iterator[np.ndarray]:
        """Yield one vector per text, in order. Any failure aborts the whole batch."""
        for index, text in enumerate(texts):
            try:
                vector = self.embed(text)
            except Exception as exc:
                raise EmbeddingError(f"Failed to embed item {index} of {len(texts)}") from exc
            yield vector

    def embed_batch(
        self,
        texts: Sequence[str],
        on_progress: Callable[[float], None] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> list[np.ndarray]:
        """Embed every text, reporting the completed fraction after each item."""
        vectors: list[np.ndarray] = []
        self._check_cancelled(cancel_event)
        for vector in self.iter_embed_batch(texts):
            vectors.append(vector)
            if on_progress:
                on_progress(len(vectors) / len(texts))
            if len(vectors) < len(texts):
                self._check_cancelled(cancel_event)
        return vectors

    @staticmethod
    def _check_cancelled(cancel_event: threading.Event | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError("Embedding batch cancelled")
