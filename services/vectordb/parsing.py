"""Parse the free-form text users type for record metadata and vectors."""
import json
import math
from collections.abc import Sequence

from services.vectordb.errors import DimensionMismatchError, RecordValidationError


def parse_vector_text(value: str | Sequence[float] | None, dimensions: int) -> list[float] | None:
    """Parse ``"0.1, 0.2, 0.3"`` into floats.

    Returns None for blank input, meaning a random vector should be generated.
    """
    if value is None:
        return None
    if isinstance(value, str):
        if not value.strip():
            return None
        parts = value.split(",")
    else:
        parts = list(value)

    vector: list[float] = []
    for position, part in enumerate(parts):
        try:
            number = float(part.strip() if isinstance(part, str) else part)
        except (TypeError, ValueError) as exc:
            raise RecordValidationError(f"Invalid vector format: entry {position} is not a number") from exc
        if not math.isfinite(number):
            raise RecordValidationError(f"Invalid vector format: entry {position} is not finite")
        vector.append(number)

    if len(vector) != dimensions:
        raise DimensionMismatchError(expected=dimensions, actual=len(vector),
                                     message=f"Vector must have exactly {dimensions} dimensions")
    return vector


def parse_metadata_text(value: str | dict | None) -> dict:
    """Parse JSON metadata text. Structured input is passed through for model validation."""
    if value is None:
        return {}
    if not isinstance(value, str):
        if not isinstance(value, dict):
            raise RecordValidationError("Metadata must be a JSON object")
        return value
    if not value.strip():
        return {}

    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as exc:
        raise RecordValidationError("Invalid JSON in metadata field") from exc
    if not isinstance(parsed, dict):
        raise RecordValidationError("Metadata must be a JSON object")
    return parsed
