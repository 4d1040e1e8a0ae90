"""Factory to choose embedder"""
import os
from functools import lru_cache

from dotenv import load_dotenv

from provider.embedding.base import EmbeddingBackendProvider

load_dotenv()

SYNTHETIC = "SYNTHETIC"
SENTENCE_TRANSFORMER = "SENTENCE_TRANSFORMER"


@lru_cache(maxsize=16)
def get_embedder(dimensions: int) -> EmbeddingBackendProvider:
    """get embedder type based on env os"""
    backend = os.getenv("EMBEDDING_MODEL_BACKEND", SYNTHETIC).upper()
    if backend == SENTENCE_TRANSFORMER:
        from provider.embedding.sentence_transformer import SentenceTransformerEmbedder # pylint: disable=import-outside-toplevel
        return SentenceTransformerEmbedder(dimensions=dimensions)

    from provider.embedding.synthetic_hash import SyntheticHashEmbedder # pylint: disable=import-outside-toplevel
    return SyntheticHashEmbedder(dimensions=dimensions)
