"""Unit tests for ingest job state and the background job runner."""

import unittest
from unittest.mock import MagicMock

from router.documents.endpoints import run_ingest_job
from router.documents.job_state import IngestJob, IngestJobRegistry, JobStatus
from services.chunking.models import ChunkConfig
from services.ingest.progress import ProgressEvent
from services.vectordb.errors import EmbeddingError, OperationCancelledError


class TestIngestJob(unittest.TestCase):
    """Status transitions."""

    def setUp(self) -> None:
        self.job = IngestJobRegistry().create("db", "Doc")

    def test_registry_lookup(self) -> None:
        """Jobs are found by id."""
        registry = IngestJobRegistry()
        job = registry.create("db", "Doc")

        self.assertIs(registry.get(job.id), job)
        self.assertIsNone(registry.get("missing"))

    def test_oldest_finished_jobs_are_evicted(self) -> None:
        """Past the cap, finished jobs go first and running ones stay."""
        registry = IngestJobRegistry(max_jobs=2)
        running = registry.create("db", "running")
        running.try_start()
        done = registry.create("db", "done")
        done.finish(JobStatus.COMPLETED)

        newest = registry.create("db", "newest")

        self.assertIsNone(registry.get(done.id))
        self.assertIs(registry.get(running.id), running)
        self.assertIs(registry.get(newest.id), newest)

    def test_unfinished_jobs_are_kept_over_the_cap(self) -> None:
        """Pending and running jobs are never dropped."""
        registry = IngestJobRegistry(max_jobs=1)
        first = registry.create("db", "first")
        second = registry.create("db", "second")

        self.assertEqual(len(registry.jobs), 2)
        first.finish(JobStatus.FAILED, "boom")
        third = registry.create("db", "third")

        self.assertEqual(set(registry.jobs), {second.id, third.id})

    def test_cancel_pending_job(self) -> None:
        """A pending job is cancelled at once and never starts."""
        self.assertTrue(self.job.cancel())

        self.assertEqual(self.job.status, JobStatus.CANCELLED)
        self.assertTrue(self.job.cancel_event.is_set())
        self.assertFalse(self.job.try_start())

    def test_cancel_running_job_sets_event(self) -> None:
        """A running job keeps its status until the pipeline notices the event."""
        self.assertTrue(self.job.try_start())

        self.assertTrue(self.job.cancel())
        self.assertEqual(self.job.status, JobStatus.RUNNING)
        self.assertTrue(self.job.cancel_event.is_set())

    def test_finished_job_cannot_be_cancelled(self) -> None:
        """Cancelling after completion is refused."""
        self.job.try_start()
        self.job.update(ProgressEvent(1.0, records_added=3))

        self.assertEqual(self.job.status, JobStatus.COMPLETED)
        self.assertFalse(self.job.cancel())

    def test_cancel_during_commit_still_completes(self) -> None:
        """A late request is reported but does not undo committed records."""
        self.job.try_start()
        self.assertTrue(self.job.cancel())

        self.job.update(ProgressEvent(1.0, records_added=2))

        snapshot = self.job.snapshot()
        self.assertEqual(snapshot["status"], "completed")
        self.assertTrue(snapshot["cancel_requested"])
        self.assertEqual(snapshot["records_added"], 2)

    def test_snapshot(self) -> None:
        """Progress is reported with its phase label."""
        self.job.try_start()
        self.job.update(ProgressEvent(0.5))

        snapshot = self.job.snapshot()

        self.assertEqual(snapshot["status"], "running")
        self.assertEqual(snapshot["progress"], 0.5)
        self.assertEqual(snapshot["phase"], "Generating embeddings...")
        self.assertIsNone(snapshot["error"])
        self.assertFalse(snapshot["cancel_requested"])


class TestRunIngestJob(unittest.TestCase):
    """Outcome of a background job for each pipeline result."""

    def setUp(self) -> None:
        self.job = IngestJob(database_id="db", document_name="Doc")
        self.service = MagicMock()
        self.config = ChunkConfig()

    def test_success(self) -> None:
        """Events are applied and the job completes."""
        self.service.run.return_value = iter([ProgressEvent(0.0), ProgressEvent(0.1), ProgressEvent(1.0, 4)])

        run_ingest_job(self.service, self.job, "text", self.config)

        self.assertEqual(self.job.status, JobStatus.COMPLETED)
        self.assertEqual(self.job.records_added, 4)
        self.service.run.assert_called_once_with("db", "Doc", "text", self.config, self.job.cancel_event)

    def test_cancelled_before_start(self) -> None:
        """A job cancelled while pending never runs."""
        self.job.cancel()

        run_ingest_job(self.service, self.job, "text", self.config)

        self.service.run.assert_not_called()
        self.assertEqual(self.job.status, JobStatus.CANCELLED)

    def test_cancelled_while_running(self) -> None:
        """Cancellation from the pipeline marks the job cancelled."""
        self.service.run.side_effect = OperationCancelledError("stop")

        run_ingest_job(self.service, self.job, "text", self.config)

        self.assertEqual(self.job.status, JobStatus.CANCELLED)
        self.assertIsNone(self.job.error)

    def test_known_failure(self) -> None:
        """Service errors are reported as the job error."""
        self.service.run.side_effect = EmbeddingError("Failed to embed item 2 of 3")

        run_ingest_job(self.service, self.job, "text", self.config)

        self.assertEqual(self.job.status, JobStatus.FAILED)
        self.assertEqual(self.job.error, "Failed to embed item 2 of 3")

    def test_unexpected_failure(self) -> None:
        """Anything else fails the job with a generic prefix."""
        self.service.run.side_effect = RuntimeError("boom")

        with self.assertLogs("router.documents.endpoints", level="ERROR"):
            run_ingest_job(self.service, self.job, "text", self.config)

        self.assertEqual(self.job.status, JobStatus.FAILED)
        self.assertEqual(self.job.error, "Failed to process document: boom")


if __name__ == "__main__":
    unittest.main()
