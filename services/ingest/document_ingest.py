"""Turn an uploaded document into database records: chunk, embed, commit."""
import logging
import threading
import uuid
from collections.abc import Callable, Iterator
from dataclasses import asdict, dataclass

from provider.embedding.base import EmbeddingBackendProvider
from provider.embedding.embedder_factory import get_embedder
from services.chunking.chunk_text import chunk_document
from services.chunking.models import ChunkConfig, DocumentChunk
from services.ingest.progress import CHUNKING_DONE, EMBEDDING_DONE, ProgressEvent, embedding_progress
from services.vectordb.errors import OperationCancelledError, RecordValidationError
from services.vectordb.models import Record
from services.vectordb.store import VectorDatabaseStore


@dataclass
class DocumentIngestService:
    """Chunks a document, embeds every chunk and appends the result as one batch.

    ``run`` is a generator: iterate it to drive the work and observe progress.
    Nothing is written to the store unless every step succeeds.
    """
    store: VectorDatabaseStore
    logger: logging.Logger
    embedder_factory: Callable[[int], EmbeddingBackendProvider] = get_embedder

    def run(
        self,
        database_id: str,
        document_name: str,
        text: str,
        config: ChunkConfig,
        cancel_event: threading.Event | None = None,
    ) -> Iterator[ProgressEvent]:
        """Process one document, yielding progress events until the records are committed."""
        if not document_name.strip():
            raise RecordValidationError("Document name is required")
        if not text.strip():
            raise RecordValidationError("Document text is required")
        config.validate()
        database = self.store.get_database(database_id)

        yield ProgressEvent(0.0)
        document_id = uuid.uuid4().hex
        chunks = chunk_document(text, config, document_id, document_name.strip())
        self.logger.info("Split %s into %d chunks", document_name, len(chunks))
        if not chunks:
            raise RecordValidationError("Document produced no chunks")
        self._check_cancelled(cancel_event)
        yield ProgressEvent(CHUNKING_DONE)

        embedder = self.embedder_factory(database.dimensions)
        vectors = []
        for vector in embedder.iter_embed_batch([chunk.content for chunk in chunks]):
            vectors.append(vector)
            self._check_cancelled(cancel_event)
            yield ProgressEvent(embedding_progress(len(vectors) / len(chunks)))

        yield ProgressEvent(EMBEDDING_DONE)
        records = [
            self._build_record(chunk, vector.tolist(), config, len(text))
            for chunk, vector in zip(chunks, vectors)
        ]
        self._check_cancelled(cancel_event)
        added = self.store.add_records(database_id, records)
        self.logger.info("Added %d chunks of %s to database %s", len(added), document_name, database_id)
        yield ProgressEvent(1.0, records_added=len(added))

    def process(self, database_id: str, document_name: str, text: str, config: ChunkConfig,
                on_progress: Callable[[ProgressEvent], None] | None = None,
                cancel_event: threading.Event | None = None) -> int:
        """Run to completion and return the number of records added."""
        added = 0
        for event in self.run(database_id, document_name, text, config, cancel_event):
            if on_progress:
                on_progress(event)
            if event.done:
                added = event.records_added
        return added

    @staticmethod
    def _build_record(chunk: DocumentChunk, vector: list[float], config: ChunkConfig,
                      document_length: int) -> Record:
        metadata = asdict(chunk.metadata)
        metadata.update(
            chunk_size=config.chunk_size,
            chunk_overlap=config.chunk_overlap,
            preserve_sentences=config.preserve_sentences,
            original_document_length=document_length,
            file_type="processed_document",
        )
        return Record(id=chunk.id, content=chunk.content, metadata=metadata, vector=vector)

    @staticmethod
    def _check_cancelled(cancel_event: threading.Event | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError("Document processing cancelled")
