"""In-memory application state: every database and its records."""
import logging
import threading
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np
from pydantic import ValidationError

from provider.embedding.base import EmbeddingBackendProvider
from provider.embedding.synthetic_hash import SyntheticHashEmbedder
from services.search.similarity import DEFAULT_MIN_SCORE, search
from services.vectordb.errors import (
    DatabaseNotFoundError,
    DimensionMismatchError,
    RecordNotFoundError,
    RecordValidationError,
)
from services.vectordb.models import Database, Record, SearchResult
from services.vectordb.parsing import parse_metadata_text, parse_vector_text

DEMO_RECORDS = (
    ("Wireless Bluetooth headphones with noise cancellation",
     {"category": "electronics", "price": 199.99, "brand": "TechCorp"}),
    ("Organic cotton t-shirt in navy blue",
     {"category": "clothing", "price": 29.99, "brand": "EcoWear"}),
)


def _describe(exc: ValidationError) -> str:
    """Flatten pydantic errors into one user facing message."""
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or 'input'}: {error['msg']}"
        for error in exc.errors()
    )


@dataclass
class VectorDatabaseStore:
    """Owns every database. All reads and writes go through these methods.

    Mutations either fully apply or leave the store untouched.
    """
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))
    _databases: dict[str, Database] = field(default_factory=dict, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)
    _rng: np.random.Generator = field(default_factory=np.random.default_rng, init=False)

    # Databases

    def create_database(self, name: str, description: str = "", dimensions: int = 384) -> Database:
        """Create an empty database."""
        try:
            database = Database(id=uuid.uuid4().hex, name=name, description=description, dimensions=dimensions)
        except ValidationError as exc:
            raise RecordValidationError(_describe(exc)) from exc

        with self._lock:
            self._databases[database.id] = database
        self.logger.info("Created database %s (%s, %d dimensions)", database.id, database.name, dimensions)
        return database.model_copy(deep=True)

    def list_databases(self) -> list[Database]:
        """All databases in creation order."""
        with self._lock:
            return [database.model_copy(deep=True) for database in self._databases.values()]

    def get_database(self, database_id: str) -> Database:
        """Snapshot of one database."""
        with self._lock:
            return self._get(database_id).model_copy(deep=True)

    def delete_database(self, database_id: str) -> None:
        """Delete a database and every record it holds."""
        with self._lock:
            self._get(database_id)
            del self._databases[database_id]
        self.logger.info("Deleted database %s", database_id)

    # Records

    def add_record(self, database_id: str, content: str, metadata: str | dict | None = None,
                   vector: str | Sequence[float] | None = None) -> Record:
        """Validate and append a record. A blank vector gets random components in [-1, 1]."""
        with self._lock:
            database = self._get(database_id)
            record = self._build_record(database, uuid.uuid4().hex, content, metadata, vector)
            database.records.append(record)
        self.logger.debug("Added record %s to database %s", record.id, database_id)
        return record.model_copy(deep=True)

    def update_record(self, database_id: str, record_id: str, content: str,
                      metadata: str | dict | None = None, vector: str | Sequence[float] | None = None) -> Record:
        """Replace content, metadata and vector of a record, keeping its id."""
        with self._lock:
            database = self._get(database_id)
            position = database.find_record(record_id)
            if position is None:
                raise RecordNotFoundError(f"Record {record_id} not found in database {database_id}")
            record = self._build_record(database, record_id, content, metadata, vector)
            database.records[position] = record
        self.logger.debug("Updated record %s in database %s", record_id, database_id)
        return record.model_copy(deep=True)

    def delete_record(self, database_id: str, record_id: str) -> None:
        """Remove a record from its database."""
        with self._lock:
            database = self._get(database_id)
            position = database.find_record(record_id)
            if position is None:
                raise RecordNotFoundError(f"Record {record_id} not found in database {database_id}")
            del database.records[position]
        self.logger.debug("Deleted record %s from database %s", record_id, database_id)

    def add_records(self, database_id: str, records: Sequence[Record]) -> list[Record]:
        """Append a batch of records. Nothing is appended unless every record is valid."""
        with self._lock:
            database = self._get(database_id)
            seen = {record.id for record in database.records}
            validated: list[Record] = []
            for record in records:
                if record.id in seen:
                    raise RecordValidationError(f"Duplicate record id {record.id}")
                seen.add(record.id)
                try:
                    validated.append(Record.model_validate(record.model_dump(),
                                                           context={"dimensions": database.dimensions}))
                except ValidationError as exc:
                    raise RecordValidationError(_describe(exc)) from exc
            database.records.extend(validated)
        self.logger.info("Added %d records to database %s", len(validated), database_id)
        return [record.model_copy(deep=True) for record in validated]

    # Queries

    def search(self, database_id: str, query_vector: Sequence[float], query_text: str = "",
               min_score: float = DEFAULT_MIN_SCORE) -> list[SearchResult]:
        """Rank the records of one database against a query vector."""
        with self._lock:
            database = self._get(database_id)
            records = [record.model_copy(deep=True) for record in database.records]
        if len(query_vector) != database.dimensions:
            raise DimensionMismatchError(expected=database.dimensions, actual=len(query_vector))
        return search(query_vector, records, query_text=query_text, min_score=min_score)

    def summary(self) -> dict[str, object]:
        """Counts shown on the dashboard."""
        with self._lock:
            databases = [
                {
                    "id": database.id,
                    "name": database.name,
                    "description": database.description,
                    "dimensions": database.dimensions,
                    "record_count": len(database.records),
                }
                for database in self._databases.values()
            ]
        return {
            "total_databases": len(databases),
            "total_records": sum(database["record_count"] for database in databases),
            "databases": databases,
        }

    def seed_demo_data(self, embedder: EmbeddingBackendProvider | None = None) -> Database:
        """Create the demo "Product Embeddings" database."""
        database = self.create_database(
            name="Product Embeddings",
            description="Vector embeddings for product search and recommendations",
            dimensions=384,
        )
        embedder = embedder or SyntheticHashEmbedder(dimensions=database.dimensions)
        for content, metadata in DEMO_RECORDS:
            self.add_record(database.id, content, metadata, embedder.embed(content).tolist())
        return self.get_database(database.id)

    # Internals

    def _get(self, database_id: str) -> Database:
        database = self._databases.get(database_id)
        if database is None:
            raise DatabaseNotFoundError(f"Database {database_id} not found")
        return database

    def _build_record(self, database: Database, record_id: str, content: str,
                      metadata: str | dict | None, vector: str | Sequence[float] | None) -> Record:
        parsed_metadata = parse_metadata_text(metadata)
        parsed_vector = parse_vector_text(vector, database.dimensions)
        if parsed_vector is None:
            parsed_vector = self._rng.uniform(-1.0, 1.0, database.dimensions).tolist()
        try:
            return Record.model_validate(
                {"id": record_id, "content": content, "metadata": parsed_metadata, "vector": parsed_vector},
                context={"dimensions": database.dimensions},
            )
        except ValidationError as exc:
            raise RecordValidationError(_describe(exc)) from exc
