"""
Endpoints for uploading documents and following their ingest jobs.
"""
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, UploadFile

from provider.extraction.text_extractor import document_name_from_filename, extract_text
from router.dependencies import get_ingest_service, get_jobs, get_store
from router.documents.job_state import IngestJob, IngestJobRegistry, JobStatus
from services.chunking.models import ChunkConfig
from services.ingest.document_ingest import DocumentIngestService
from services.vectordb.errors import OperationCancelledError, RecordValidationError, VectorDatabaseError
from services.vectordb.store import VectorDatabaseStore

logger = logging.getLogger(__name__)

router = APIRouter()


def run_ingest_job(service: DocumentIngestService, job: IngestJob, text: str, config: ChunkConfig) -> None:
    """Drive the ingest pipeline for one job, recording progress as it goes."""
    if not job.try_start():
        logger.info("Job %s cancelled before it started", job.id)
        return

    logger.info("Processing %s for database %s (job %s)", job.document_name, job.database_id, job.id)
    try:
        for event in service.run(job.database_id, job.document_name, text, config, job.cancel_event):
            job.update(event)
    except OperationCancelledError:
        logger.info("Job %s cancelled", job.id)
        job.finish(JobStatus.CANCELLED)
    except VectorDatabaseError as exc:
        logger.warning("Job %s failed: %s", job.id, exc)
        job.finish(JobStatus.FAILED, str(exc))
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception("Unexpected error in job %s", job.id)
        job.finish(JobStatus.FAILED, f"Failed to process document: {exc}")
    else:
        logger.info("Job %s done, %d records added", job.id, job.records_added)


@router.post("/databases/{database_id}/documents", status_code=202)
def upload_document(  # pylint: disable=too-many-arguments
    database_id: str,
    background_tasks: BackgroundTasks,
    file: UploadFile | None = File(None),
    text: str = Form(""),
    name: str = Form(""),
    chunk_size: int = Form(500),
    chunk_overlap: int = Form(50),
    preserve_sentences: bool = Form(True),
    store: VectorDatabaseStore = Depends(get_store),
    service: DocumentIngestService = Depends(get_ingest_service),
    jobs: IngestJobRegistry = Depends(get_jobs),
):
    """Accept a .txt/.pdf/.docx upload or pasted text and start processing it in the background."""
    if file is not None and file.filename:
        text = extract_text(file.filename, file.file.read())
        name = name or document_name_from_filename(file.filename)

    if not name.strip():
        raise RecordValidationError("Document name is required")
    if not text.strip():
        raise RecordValidationError("Document text is required")
    config = ChunkConfig(chunk_size=chunk_size, chunk_overlap=chunk_overlap, preserve_sentences=preserve_sentences)
    config.validate()
    store.get_database(database_id)

    job = jobs.create(database_id, name.strip())
    background_tasks.add_task(run_ingest_job, service, job, text, config)
    return job.snapshot()


@router.get("/jobs/{job_id}")
def job_status(job_id: str, jobs: IngestJobRegistry = Depends(get_jobs)):
    """Status, progress and phase of an ingest job."""
    job = jobs.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")
    return job.snapshot()


@router.delete("/jobs/{job_id}")
def cancel_job(job_id: str, jobs: IngestJobRegistry = Depends(get_jobs)):
    """Request cancellation of a pending or running job."""
    job = jobs.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")
    if not job.cancel():
        raise HTTPException(status_code=409, detail=f"Job {job_id} already finished")
    return job.snapshot()
