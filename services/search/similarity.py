"""Brute-force cosine similarity search over a flat list of records."""
import json
from collections.abc import Sequence

import numpy as np

from services.vectordb.errors import DimensionMismatchError, RecordValidationError
from services.vectordb.models import Record, SearchResult

DEFAULT_MIN_SCORE = 0.1


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between two vectors, 0.0 when either has zero magnitude."""
    vec_a = np.asarray(a, dtype=np.float64)
    vec_b = np.asarray(b, dtype=np.float64)
    if vec_a.shape != vec_b.shape:
        raise DimensionMismatchError(expected=vec_a.size, actual=vec_b.size)

    magnitude = np.linalg.norm(vec_a) * np.linalg.norm(vec_b)
    if magnitude == 0:
        return 0.0
    return float(np.dot(vec_a, vec_b) / magnitude)


def matches_text(record: Record, query_text: str) -> bool:
    """Case-insensitive substring match against content and serialized metadata."""
    needle = query_text.lower()
    if not needle.strip():
        return False
    if needle in record.content.lower():
        return True
    serialized = json.dumps(record.metadata, separators=(",", ":"), ensure_ascii=False)
    return needle in serialized.lower()


def search(
    query_vector: Sequence[float],
    records: Sequence[Record],
    query_text: str = "",
    min_score: float = DEFAULT_MIN_SCORE,
) -> list[SearchResult]:
    """Rank records by cosine similarity to the query vector.

    A record is kept when it scores above ``min_score`` or when ``query_text``
    appears in its content or metadata, so keyword hits surface even when the
    embedding is weak. Ties keep insertion order.
    """
    query = np.asarray(query_vector, dtype=np.float64)
    if not np.isfinite(query).all():
        raise RecordValidationError("Query vector must contain only finite numbers")
    if not records:
        return []

    for record in records:
        if len(record.vector) != query.size:
            raise DimensionMismatchError(expected=query.size, actual=len(record.vector))

    matrix = np.asarray([record.vector for record in records], dtype=np.float64)
    magnitudes = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    scores = np.divide(dots, magnitudes, out=np.zeros_like(dots), where=magnitudes != 0)

    results = [
        SearchResult(record=record, similarity=float(score))
        for record, score in zip(records, scores)
        if score > min_score or matches_text(record, query_text)
    ]
    # sorted() is stable, so equal scores stay in insertion order
    return sorted(results, key=lambda result: result.similarity, reverse=True)
