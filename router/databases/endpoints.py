"""
Endpoints for databases, their records and similarity search.
"""
import os
from collections.abc import Callable
from typing import Any

from dotenv import load_dotenv
from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, FiniteFloat

from provider.embedding.base import EmbeddingBackendProvider
from router.dependencies import get_embedder_factory, get_store
from services.vectordb.models import MAX_DIMENSIONS, Database, Record, SearchResult
from services.vectordb.store import VectorDatabaseStore

load_dotenv()

router = APIRouter()

SEARCH_MIN_SCORE = float(os.getenv("VECTORDB_SEARCH_MIN_SCORE", "0.1"))


class DatabaseCreate(BaseModel):
    """Body for creating a database."""
    name: str
    description: str = ""
    dimensions: int = 384


class RecordInput(BaseModel):
    """Body for adding or editing a record.

    ``metadata`` may be a JSON object or JSON text, ``vector`` a list or
    comma-separated text. A missing vector is filled with random values.
    """
    content: str
    metadata: str | dict[str, Any] | None = None
    vector: str | list[float] | None = None


class VectorSearch(BaseModel):
    """Body for searching with an explicit query vector."""
    vector: list[FiniteFloat]
    query_text: str = ""
    min_score: float = SEARCH_MIN_SCORE


@router.get("/databases")
def list_databases(store: VectorDatabaseStore = Depends(get_store)) -> list[Database]:
    """All databases with their records."""
    return store.list_databases()


@router.post("/databases", status_code=201)
def create_database(body: DatabaseCreate, store: VectorDatabaseStore = Depends(get_store)) -> Database:
    """Create a database. Dimensions must be between 1 and 2048."""
    return store.create_database(body.name, body.description, body.dimensions)


@router.get("/databases/{database_id}")
def get_database(database_id: str, store: VectorDatabaseStore = Depends(get_store)) -> Database:
    """One database with its records."""
    return store.get_database(database_id)


@router.delete("/databases/{database_id}", status_code=204)
def delete_database(database_id: str, store: VectorDatabaseStore = Depends(get_store)) -> Response:
    """Delete a database and its records."""
    store.delete_database(database_id)
    return Response(status_code=204)


@router.get("/stats")
def stats(store: VectorDatabaseStore = Depends(get_store)):
    """Dashboard counts."""
    return {**store.summary(), "max_dimensions": MAX_DIMENSIONS}


@router.get("/databases/{database_id}/records")
def list_records(database_id: str, store: VectorDatabaseStore = Depends(get_store)) -> list[Record]:
    """Records of one database in insertion order."""
    return store.get_database(database_id).records


@router.post("/databases/{database_id}/records", status_code=201)
def add_record(database_id: str, body: RecordInput, store: VectorDatabaseStore = Depends(get_store)) -> Record:
    """Add a record."""
    return store.add_record(database_id, body.content, body.metadata, body.vector)


@router.put("/databases/{database_id}/records/{record_id}")
def update_record(database_id: str, record_id: str, body: RecordInput,
                  store: VectorDatabaseStore = Depends(get_store)) -> Record:
    """Replace a record's content, metadata and vector."""
    return store.update_record(database_id, record_id, body.content, body.metadata, body.vector)


@router.delete("/databases/{database_id}/records/{record_id}", status_code=204)
def delete_record(database_id: str, record_id: str, store: VectorDatabaseStore = Depends(get_store)) -> Response:
    """Delete a record."""
    store.delete_record(database_id, record_id)
    return Response(status_code=204)


@router.get("/databases/{database_id}/search")
def search_database(
    database_id: str,
    query: str = Query("", description="Search query"),
    min_score: float = Query(SEARCH_MIN_SCORE, description="Similarity threshold"),
    store: VectorDatabaseStore = Depends(get_store),
    embedder_factory: Callable[[int], EmbeddingBackendProvider] = Depends(get_embedder_factory),
):
    """Embed the query text and rank the database records against it."""
    database = store.get_database(database_id)
    results: list[SearchResult] = []
    if query.strip():
        query_vector = embedder_factory(database.dimensions).embed(query, is_query=True)
        results = store.search(database_id, query_vector.tolist(), query_text=query, min_score=min_score)
    return {
        "query": query,
        "results": results,
    }


@router.post("/databases/{database_id}/search")
def search_by_vector(database_id: str, body: VectorSearch,
                     store: VectorDatabaseStore = Depends(get_store)) -> list[SearchResult]:
    """Rank the database records against an explicit vector."""
    return store.search(database_id, body.vector, query_text=body.query_text, min_score=body.min_score)
