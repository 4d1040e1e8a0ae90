"""Exceptions raised by the vector database services."""


class VectorDatabaseError(Exception):
    """Base class for every error raised by the vector database services."""


class RecordValidationError(VectorDatabaseError, ValueError):
    """User input was rejected before anything was mutated."""


class DimensionMismatchError(RecordValidationError):
    """A vector does not have the length required by its database."""

    def __init__(self, expected: int, actual: int, message: str | None = None):
        self.expected = expected
        self.actual = actual
        super().__init__(message or f"Vector must have exactly {expected} dimensions (got {actual})")


class InvalidChunkConfigError(RecordValidationError):
    """Chunk settings that would produce empty or non-advancing windows."""


class DatabaseNotFoundError(VectorDatabaseError, LookupError):
    """No database with the requested id."""


class RecordNotFoundError(VectorDatabaseError, LookupError):
    """No record with the requested id in the database."""


class UnsupportedFileTypeError(VectorDatabaseError):
    """Uploaded document type is not one we can extract text from."""

    def __init__(self, filename: str, allowed: tuple[str, ...]):
        self.filename = filename
        self.allowed = allowed
        super().__init__(f"Unsupported file type for '{filename}'. Allowed types: {', '.join(allowed)}")


class ExtractionError(VectorDatabaseError):
    """The document could not be read."""


class EmbeddingError(VectorDatabaseError):
    """The embedding backend failed for at least one item of a batch."""


class OperationCancelledError(VectorDatabaseError):
    """A long running operation was cancelled by the caller."""
