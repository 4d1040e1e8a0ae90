"""Deterministic hash based pseudo-embeddings for offline use."""
import re

import numpy as np

from provider.embedding.base import EmbeddingBackendProvider

WHITESPACE = re.compile(r"\s+")


def utf16_units(word: str) -> np.ndarray:
    """UTF-16 code units of a word; characters outside the BMP count as two."""
    return np.frombuffer(word.encode("utf-16-le"), dtype="<u2")


def string_hash(word: str) -> int:
    """32-bit signed rolling hash, ``h = h * 31 + code`` over the UTF-16 code units."""
    value = 0
    for unit in utf16_units(word):
        value = (value * 31 + int(unit)) & 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


class SyntheticHashEmbedder(EmbeddingBackendProvider):
    """Word hashes mixed through sin/cos across every dimension, then L2 normalized.

    Texts sharing words land close to each other, which is enough for demos
    and tests. Not a language model.
    """

    def __init__(self, dimensions: int):
        if dimensions <= 0:
            raise ValueError(f"dimensions must be positive (got {dimensions})")
        self.dimensions = dimensions
        self._axis = np.arange(dimensions, dtype=np.float64)

    def embed(self, text: str, is_query: bool = False) -> np.ndarray:
        """Embed text; ``is_query`` makes no difference for this backend."""
        words = WHITESPACE.split(text.lower())
        embedding = np.zeros(self.dimensions, dtype=np.float64)
        weight = 1 / np.sqrt(len(words))

        for position, word in enumerate(words):
            positional = position * 31 + len(utf16_units(word))
            seed = string_hash(word) + positional + self._axis
            embedding += np.sin(seed) * np.cos(seed * 0.7) * weight

        magnitude = np.linalg.norm(embedding)
        return embedding / magnitude if magnitude > 0 else embedding
