"""
Contains the main FastAPI application for the Vector Database Manager.
"""
import logging
import os
from collections.abc import Callable

from dotenv import load_dotenv
from fastapi import FastAPI

from provider.embedding.base import EmbeddingBackendProvider
from provider.embedding.embedder_factory import get_embedder
from router.databases.endpoints import router as databases
from router.documents.endpoints import router as documents
from router.documents.job_state import IngestJobRegistry
from router.errors import vector_database_error_handler
from router.frontend.frontend import router as frontend
from services.ingest.document_ingest import DocumentIngestService
from services.vectordb.errors import VectorDatabaseError
from services.vectordb.store import VectorDatabaseStore

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "WARNING").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

logger = logging.getLogger(__name__)


def create_app(
    store: VectorDatabaseStore | None = None,
    embedder_factory: Callable[[int], EmbeddingBackendProvider] = get_embedder,
    seed_demo_data: bool | None = None,
) -> FastAPI:
    """Build the application around one in-memory store."""
    if store is None:
        store = VectorDatabaseStore()
        if seed_demo_data is None:
            seed_demo_data = os.getenv("VECTORDB_SEED_DEMO_DATA", "True").lower() == "true"
    if seed_demo_data:
        store.seed_demo_data()
        logger.info("Seeded demo database")

    application = FastAPI(title="Vector Database Manager")
    application.state.store = store
    application.state.embedder_factory = embedder_factory
    application.state.ingest_service = DocumentIngestService(
        store=store,
        logger=logging.getLogger("services.ingest"),
        embedder_factory=embedder_factory,
    )
    application.state.jobs = IngestJobRegistry()

    application.add_exception_handler(VectorDatabaseError, vector_database_error_handler)
    application.include_router(databases, tags=["databases", "records", "search"])
    application.include_router(documents, tags=["documents", "jobs"])
    application.include_router(frontend, tags=["frontend"])

    @application.get("/health")
    def hp():
        """Health check endpoint."""
        return {"status": "Healthy"}

    return application


app = create_app()
