"""Data models for databases and their records."""
from typing import Annotated, Union

from pydantic import BaseModel, Field, FiniteFloat, StrictBool, StrictFloat, StrictInt, StrictStr
from pydantic import ValidationInfo, field_validator

MIN_DIMENSIONS = 1
MAX_DIMENSIONS = 2048

# Metadata values are restricted to a closed set of JSON-friendly kinds.
MetadataValue = Union[StrictBool, StrictInt, StrictFloat, StrictStr, list[StrictStr]]
Metadata = dict[str, MetadataValue]


class Record(BaseModel):
    """One content + metadata + vector entry of a database.

    Validate with ``Record.model_validate(data, context={"dimensions": n})`` so
    the vector length is checked at construction.
    """
    id: str
    content: str
    metadata: Metadata = Field(default_factory=dict)
    vector: list[FiniteFloat]

    @field_validator("content")
    @classmethod
    def _val_content(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Content is required")
        return value

    @field_validator("vector")
    @classmethod
    def _val_vector(cls, value: list[float], info: ValidationInfo) -> list[float]:
        dimensions = (info.context or {}).get("dimensions")
        if dimensions is not None and len(value) != dimensions:
            raise ValueError(f"Vector must have exactly {dimensions} dimensions (got {len(value)})")
        return value


class Database(BaseModel):
    """Named collection of records sharing one vector dimensionality."""
    id: str
    name: str
    description: str = ""
    dimensions: Annotated[int, Field(ge=MIN_DIMENSIONS, le=MAX_DIMENSIONS)] = 384
    records: list[Record] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _val_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Database name is required")
        return value

    def find_record(self, record_id: str) -> int | None:
        """Position of a record in the database, or None."""
        for index, record in enumerate(self.records):
            if record.id == record_id:
                return index
        return None


class SearchResult(BaseModel):
    """A record and its similarity to the query."""
    record: Record
    similarity: float
