"""Embeddings backed by a sentence-transformers feature extraction pipeline."""

import logging
import os
from collections.abc import Iterator, Sequence
from functools import lru_cache

import numpy as np
import torch
from dotenv import load_dotenv
from sentence_transformers import SentenceTransformer

from provider.embedding.base import EmbeddingBackendProvider
from services.vectordb.errors import DimensionMismatchError, EmbeddingError

load_dotenv()

DEFAULT_MODEL_NAME = "intfloat/e5-small-v2"


@lru_cache(maxsize=2)
def load_model(model_name: str) -> SentenceTransformer:
    """Load a model once per process, on the best available device."""
    logger = logging.getLogger(__name__)

    dtype_env = os.getenv("EMBEDDING_MODEL_DTYPE", "float32").lower()
    dtype_map = {"float16": torch.float16, "float32": torch.float32}
    dtype = dtype_map.get(dtype_env, torch.float32)
    if dtype_env not in dtype_map:
        logger.warning("Invalid EMBEDDING_MODEL_DTYPE '%s', defaulting to float32", dtype_env)

    # Prefer float32 on MPS and CPU for stability
    if not torch.cuda.is_available():
        dtype = torch.float32

    device = "cuda" if torch.cuda.is_available() else "mps" if torch.backends.mps.is_available() else "cpu"
    model = SentenceTransformer(model_name, device=device, model_kwargs={"dtype": dtype})
    logger.debug("Model %s loaded on device: %s", model_name, model.device)
    return model


class SentenceTransformerEmbedder(EmbeddingBackendProvider):
    """Sentence Transformer embedding provider truncated to the database dimensions."""

    def __init__(self, dimensions: int, model_name: str | None = None):
        self.logger = logging.getLogger(__name__)
        self.model_name = model_name or os.getenv("EMBEDDING_MODEL_NAME", DEFAULT_MODEL_NAME)
        self.model = load_model(self.model_name)
        self.batch_size = int(os.getenv("EMBEDDING_MODEL_BATCH_SIZE", "16"))

        native = self.model.get_sentence_embedding_dimension()
        if native is not None and dimensions > native:
            raise DimensionMismatchError(
                expected=dimensions,
                actual=native,
                message=f"Model {self.model_name} produces {native} dimensions, database needs {dimensions}",
            )
        self.dimensions = dimensions

    def _prefixed(self, text: str, is_query: bool) -> str:
        # e5 models are trained with asymmetric query/passage prefixes
        if "e5" in self.model_name.lower():
            return f"{'query' if is_query else 'passage'}: {text}"
        return text

    def _encode(self, texts: list[str]) -> np.ndarray:
        embeddings = self.model.encode(
            texts,
            convert_to_numpy=True,
            normalize_embeddings=True,
            show_progress_bar=os.getenv("MODEL_SHOW_PROGRESS", "False").lower() == "true",
            batch_size=self.batch_size,
            truncate_dim=self.dimensions,
        )

        if os.getenv("EMBEDDING_MODEL_CLEANUP", "False").lower() == "true":
            self.logger.debug("Performing aggressive cleanup of model resources")
            if torch.backends.mps.is_available():
                torch.mps.empty_cache()
            elif torch.cuda.is_available():
                torch.cuda.empty_cache()

        return np.asarray(embeddings, dtype=np.float64).reshape(len(texts), -1)

    def embed(self, text: str, is_query: bool = False) -> np.ndarray:
        """Generate an embedding for one text."""
        return self._encode([self._prefixed(text, is_query)])[0]

    def iter_embed_batch(self, texts: Sequence[str]) -> Iterator[np.ndarray]:
        """Encode in mini batches so progress is reported per batch instead of per call."""
        for start in range(0, len(texts), self.batch_size):
            batch = [self._prefixed(text, False) for text in texts[start:start + self.batch_size]]
            try:
                embeddings = self._encode(batch)
            except Exception as exc:
                raise EmbeddingError(
                    f"Failed to embed items {start}-{start + len(batch) - 1} of {len(texts)}"
                ) from exc
            self.logger.debug("Embedded %d/%d texts", start + len(batch), len(texts))
            yield from embeddings
