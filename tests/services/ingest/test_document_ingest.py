"""Unit tests for the document ingest pipeline."""

import threading
import unittest
from unittest.mock import MagicMock

import numpy as np

from provider.embedding.synthetic_hash import SyntheticHashEmbedder
from services.chunking.models import ChunkConfig
from services.ingest.document_ingest import DocumentIngestService
from services.ingest.progress import Phase, ProgressEvent, embedding_progress, phase_for
from services.vectordb.errors import (
    DatabaseNotFoundError,
    EmbeddingError,
    InvalidChunkConfigError,
    OperationCancelledError,
    RecordValidationError,
)
from services.vectordb.store import VectorDatabaseStore

DOCUMENT = (
    "Vector databases store embeddings. They support similarity search. "
    "Chunking splits long documents. Overlap keeps context between chunks! "
    "Cosine similarity ranks the results? Keyword matches are a fallback."
)


class FlakyEmbedder(SyntheticHashEmbedder):
    """Fails on the second text."""

    def __init__(self, dimensions: int):
        super().__init__(dimensions)
        self.calls = 0

    def embed(self, text: str, is_query: bool = False) -> np.ndarray:
        self.calls += 1
        if self.calls == 2:
            raise RuntimeError("pipeline crashed")
        return super().embed(text, is_query)


class TestProgress(unittest.TestCase):
    """Phase labels at fixed thresholds."""

    def test_phase_for(self) -> None:
        """Below 10% chunking, below 95% embedding, then finalizing."""
        self.assertEqual(phase_for(0.0), Phase.CHUNKING)
        self.assertEqual(phase_for(0.099), Phase.CHUNKING)
        self.assertEqual(phase_for(0.10), Phase.EMBEDDING)
        self.assertEqual(phase_for(0.5), Phase.EMBEDDING)
        self.assertEqual(phase_for(0.95), Phase.FINALIZING)
        self.assertEqual(phase_for(1.0), Phase.FINALIZING)

    def test_embedding_progress(self) -> None:
        """Embedding fills the band between 10% and 95%."""
        self.assertAlmostEqual(embedding_progress(0.0), 0.10)
        self.assertAlmostEqual(embedding_progress(1.0), 0.95)

    def test_done(self) -> None:
        """Only the final event carries a record count."""
        self.assertFalse(ProgressEvent(0.5).done)
        self.assertTrue(ProgressEvent(1.0, records_added=0).done)


class TestDocumentIngestService(unittest.TestCase):
    """Chunk, embed, commit."""

    def setUp(self) -> None:
        self.store = VectorDatabaseStore(logger=MagicMock())
        self.database = self.store.create_database("Docs", dimensions=16)
        self.config = ChunkConfig(chunk_size=80, chunk_overlap=10, preserve_sentences=True)

    def _service(self, factory=SyntheticHashEmbedder) -> DocumentIngestService:
        return DocumentIngestService(store=self.store, logger=MagicMock(), embedder_factory=factory)

    def _records(self):
        return self.store.get_database(self.database.id).records

    def test_run_commits_chunks_as_records(self) -> None:
        """Every chunk becomes a record with lineage metadata and a vector of the database size."""
        events = list(self._service().run(self.database.id, "Guide", DOCUMENT, self.config))

        records = self._records()
        self.assertGreater(len(records), 1)
        self.assertEqual(events[-1].records_added, len(records))
        for index, record in enumerate(records):
            self.assertEqual(len(record.vector), 16)
            self.assertEqual(record.metadata["chunk_index"], index)
            self.assertEqual(record.metadata["total_chunks"], len(records))
            self.assertEqual(record.metadata["document_name"], "Guide")
            self.assertEqual(record.metadata["chunk_size"], 80)
            self.assertEqual(record.metadata["chunk_overlap"], 10)
            self.assertIs(record.metadata["preserve_sentences"], True)
            self.assertEqual(record.metadata["original_document_length"], len(DOCUMENT))
            self.assertEqual(record.metadata["file_type"], "processed_document")
            self.assertTrue(record.id.endswith(f"_chunk_{index}"))

    def test_progress_is_monotonic_through_all_phases(self) -> None:
        """Progress starts at 0, passes 10% and 95%, and ends at 1."""
        events = list(self._service().run(self.database.id, "Guide", DOCUMENT, self.config))
        progress = [event.progress for event in events]

        self.assertEqual(progress[0], 0.0)
        self.assertEqual(progress[-1], 1.0)
        self.assertEqual(progress, sorted(progress))
        self.assertIn(0.10, progress)
        self.assertIn(0.95, progress)
        self.assertEqual({event.phase for event in events}, set(Phase))
        self.assertEqual([event.done for event in events].count(True), 1)

    def test_process_returns_count(self) -> None:
        """The blocking variant forwards events and returns the number of records."""
        on_progress = MagicMock()

        added = self._service().process(self.database.id, "Guide", DOCUMENT, self.config, on_progress=on_progress)

        self.assertEqual(added, len(self._records()))
        self.assertEqual(on_progress.call_args_list[-1].args[0].progress, 1.0)

    def test_embedding_failure_commits_nothing(self) -> None:
        """A failed item fails the batch and the store stays empty."""
        with self.assertRaises(EmbeddingError):
            list(self._service(FlakyEmbedder).run(self.database.id, "Guide", DOCUMENT, self.config))

        self.assertEqual(self._records(), [])

    def test_cancellation_commits_nothing(self) -> None:
        """Cancelling mid embedding stops the run without writing."""
        cancel = threading.Event()
        run = self._service().run(self.database.id, "Guide", DOCUMENT, self.config, cancel_event=cancel)

        with self.assertRaises(OperationCancelledError):
            for event in run:
                if event.progress > 0.10:
                    cancel.set()

        self.assertEqual(self._records(), [])

    def test_validation_before_any_work(self) -> None:
        """Bad input fails on the first step and never calls the embedder."""
        factory = MagicMock()
        service = self._service(factory)

        with self.assertRaises(InvalidChunkConfigError):
            list(service.run(self.database.id, "Guide", DOCUMENT, ChunkConfig(100, 100)))
        with self.assertRaises(RecordValidationError):
            list(service.run(self.database.id, " ", DOCUMENT, self.config))
        with self.assertRaises(RecordValidationError):
            list(service.run(self.database.id, "Guide", "   ", self.config))
        with self.assertRaises(DatabaseNotFoundError):
            list(service.run("missing", "Guide", DOCUMENT, self.config))
        factory.assert_not_called()

    def test_text_without_sentences(self) -> None:
        """Punctuation only text produces no chunks and is rejected."""
        with self.assertRaises(RecordValidationError):
            list(self._service().run(self.database.id, "Dots", "... !!! ???", self.config))


if __name__ == "__main__":
    unittest.main()
