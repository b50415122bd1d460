"""Pydantic models for search requests and responses."""

from pydantic import Field, field_validator

from shared.models.edit import CamelModel


class SearchRequest(CamelModel):
    """Free-text similarity search within one collection."""

    query: str
    collection_id: str
    limit: int = Field(default=5, ge=1, le=50)

    @field_validator("collection_id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value) if value is not None else value


class SearchResultItem(CamelModel):
    document_id: str
    document_name: str
    score: float


class SearchResponse(CamelModel):
    query: str
    results: list[SearchResultItem]
    total: int
    engine: str | None = None
