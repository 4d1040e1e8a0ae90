"""Progress events emitted while a document is turned into records."""
from dataclasses import dataclass
from enum import StrEnum

CHUNKING_DONE = 0.10
EMBEDDING_DONE = 0.95


class Phase(StrEnum):
    """Human readable step of the ingest pipeline."""
    CHUNKING = "Chunking document..."
    EMBEDDING = "Generating embeddings..."
    FINALIZING = "Finalizing..."


def phase_for(progress: float) -> Phase:
    """Map a fraction in [0, 1] to its phase label."""
    if progress < CHUNKING_DONE:
        return Phase.CHUNKING
    if progress < EMBEDDING_DONE:
        return Phase.EMBEDDING
    return Phase.FINALIZING


def embedding_progress(fraction: float) -> float:
    """Scale the embedding fraction into the overall pipeline progress."""
    return CHUNKING_DONE + fraction * (EMBEDDING_DONE - CHUNKING_DONE)


@dataclass(frozen=True)
class ProgressEvent:
    """One step of progress; ``records_added`` is set on the final event only."""
    progress: float
    records_added: int | None = None

    @property
    def phase(self) -> Phase:
        """Label for the current progress."""
        return phase_for(self.progress)

    @property
    def done(self) -> bool:
        """True for the event emitted after the records were committed."""
        return self.records_added is not None
