"""Split documents into overlapping chunks."""
import re

from services.chunking.models import ChunkConfig, ChunkMetadata, DocumentChunk

SENTENCE_DELIMITERS = re.compile(r"[.!?]+")


def split_into_sentences(text: str) -> list[str]:
    """Split on sentence punctuation, dropping blank pieces and re-terminating each with a period."""
    return [piece.strip() + "." for piece in SENTENCE_DELIMITERS.split(text) if piece.strip()]


def chunk_document(text: str, config: ChunkConfig, document_id: str, document_name: str) -> list[DocumentChunk]:
    """Chunk a document, either on sentence boundaries or with a fixed character window.

    The chunk ids are ``<document_id>_chunk_<index>`` so the same input always
    yields the same chunks.
    """
    config.validate()
    if not text:
        return []

    if config.preserve_sentences:
        chunks = _chunk_by_sentences(text, config, document_id, document_name)
    else:
        chunks = _chunk_by_window(text, config, document_id, document_name)

    for chunk in chunks:
        chunk.metadata.total_chunks = len(chunks)
    return chunks


def _make_chunk(document_id: str, document_name: str, index: int, content: str,
                start: int, end: int) -> DocumentChunk:
    return DocumentChunk(
        id=f"{document_id}_chunk_{index}",
        content=content,
        metadata=ChunkMetadata(
            document_id=document_id,
            document_name=document_name,
            chunk_index=index,
            start_position=start,
            end_position=end,
        ),
    )


def _chunk_by_sentences(text: str, config: ChunkConfig, document_id: str,
                        document_name: str) -> list[DocumentChunk]:
    chunks: list[DocumentChunk] = []
    buffer = ""
    start = 0

    for sentence in split_into_sentences(text):
        candidate = f"{buffer} {sentence}" if buffer else sentence
        if len(candidate) <= config.chunk_size or not buffer:
            buffer = candidate
            continue

        end = start + len(buffer)
        chunks.append(_make_chunk(document_id, document_name, len(chunks), buffer.strip(), start, end))

        overlap = buffer[-config.chunk_overlap:] if config.chunk_overlap else ""
        buffer = f"{overlap} {sentence}" if overlap else sentence
        start = end - config.chunk_overlap

    if buffer.strip():
        chunks.append(_make_chunk(document_id, document_name, len(chunks), buffer.strip(),
                                  start, start + len(buffer)))
    return chunks


def _chunk_by_window(text: str, config: ChunkConfig, document_id: str,
                     document_name: str) -> list[DocumentChunk]:
    chunks: list[DocumentChunk] = []
    position = 0

    while position < len(text):
        end = min(position + config.chunk_size, len(text))
        chunks.append(_make_chunk(document_id, document_name, len(chunks), text[position:end], position, end))
        if end >= len(text):
            break
        # move forward but keep an overlap
        position = end - config.chunk_overlap

    return chunks
