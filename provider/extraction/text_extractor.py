"""Extract plain text from uploaded documents."""
import logging
from io import BytesIO
from pathlib import PurePath

import fitz  # PyMuPDF
from docx import Document as DocxDocument

from services.vectordb.errors import ExtractionError, UnsupportedFileTypeError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS: tuple[str, ...] = (".txt", ".pdf", ".docx")


def document_name_from_filename(filename: str) -> str:
    """Strip a supported extension: ``report.PDF`` -> ``report``."""
    path = PurePath(filename)
    if path.suffix.lower() in ALLOWED_EXTENSIONS:
        return path.stem
    return path.name


def extract_text(filename: str, data: bytes) -> str:
    """Return the text of a .txt, .pdf or .docx document."""
    extension = PurePath(filename).suffix.lower()
    if extension not in ALLOWED_EXTENSIONS:
        raise UnsupportedFileTypeError(filename, ALLOWED_EXTENSIONS)
    if not data:
        raise ExtractionError(f"'{filename}' is empty")

    if extension == ".txt":
        return data.decode("utf-8", errors="replace")
    if extension == ".pdf":
        return _extract_pdf(filename, data)
    return _extract_docx(filename, data)


def _extract_pdf(filename: str, data: bytes) -> str:
    try:
        with fitz.open(stream=data, filetype="pdf") as doc:
            parts = [page.get_text() for page in doc]
    except (RuntimeError, ValueError) as exc:
        logger.warning("Failed to read PDF %s: %s", filename, exc)
        raise ExtractionError(f"Could not read PDF '{filename}'") from exc
    return "\n".join(part for part in parts if part.strip())


def _extract_docx(filename: str, data: bytes) -> str:
    try:
        document = DocxDocument(BytesIO(data))
    except Exception as exc:  # pylint: disable=broad-except
        logger.warning("Failed to read DOCX %s: %s", filename, exc)
        raise ExtractionError(f"Could not read Word document '{filename}'") from exc
    return "\n".join(paragraph.text for paragraph in document.paragraphs if paragraph.text.strip())
