"""Data models for document chunking."""
from dataclasses import asdict, dataclass, field

from services.vectordb.errors import InvalidChunkConfigError


@dataclass(frozen=True)
class ChunkConfig:
    """Chunking settings supplied by the caller."""
    chunk_size: int = 500
    chunk_overlap: int = 50
    preserve_sentences: bool = True

    def validate(self) -> None:
        """Reject settings that cannot make progress through the text."""
        if self.chunk_size <= 0:
            raise InvalidChunkConfigError(f"chunk_size must be positive (got {self.chunk_size})")
        if self.chunk_overlap < 0:
            raise InvalidChunkConfigError(f"chunk_overlap cannot be negative (got {self.chunk_overlap})")
        if self.chunk_overlap >= self.chunk_size:
            raise InvalidChunkConfigError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than chunk_size ({self.chunk_size})"
            )


@dataclass
class ChunkMetadata:
    """Lineage and position of a chunk inside its source document."""
    document_id: str
    document_name: str
    chunk_index: int
    start_position: int
    end_position: int
    total_chunks: int = 0  # back-filled once every chunk is known


@dataclass
class DocumentChunk:
    """Contiguous piece of a document."""
    id: str
    content: str
    metadata: ChunkMetadata = field(repr=False)

    def to_dict(self) -> dict[str, object]:
        """Convert to a plain dictionary."""
        return {"id": self.id, "content": self.content, "metadata": asdict(self.metadata)}
