"""
Accessors for the objects owned by the application instance.
"""
from collections.abc import Callable

from fastapi import Request

from provider.embedding.base import EmbeddingBackendProvider
from router.documents.job_state import IngestJobRegistry
from services.ingest.document_ingest import DocumentIngestService
from services.vectordb.store import VectorDatabaseStore


def get_store(request: Request) -> VectorDatabaseStore:
    """The store owned by the running app."""
    return request.app.state.store


def get_embedder_factory(request: Request) -> Callable[[int], EmbeddingBackendProvider]:
    """Embedder factory used for query embeddings."""
    return request.app.state.embedder_factory


def get_ingest_service(request: Request) -> DocumentIngestService:
    """Document ingest pipeline bound to the app store."""
    return request.app.state.ingest_service


def get_jobs(request: Request) -> IngestJobRegistry:
    """Registry of document ingest jobs."""
    return request.app.state.jobs
