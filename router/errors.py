"""Translate service errors into HTTP responses."""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from services.vectordb.errors import (
    ExtractionError,
    RecordValidationError,
    UnsupportedFileTypeError,
    VectorDatabaseError,
)

logger = logging.getLogger(__name__)


def status_code_for(exc: VectorDatabaseError) -> int:
    """HTTP status matching an error category."""
    if isinstance(exc, LookupError):
        return 404
    if isinstance(exc, UnsupportedFileTypeError):
        return 415
    if isinstance(exc, RecordValidationError):
        return 422
    if isinstance(exc, ExtractionError):
        return 400
    return 500


async def vector_database_error_handler(_request: Request, exc: VectorDatabaseError) -> JSONResponse:
    """Exception handler registered on the app for every service error."""
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error("Request failed: %s", exc, exc_info=exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})
