from pydantic import BaseModel

from shared.clients.rag.models.EmbeddingRecord import EmbeddingMetadata


class QueryMatch(BaseModel):
    """A single nearest-neighbour hit."""

    id: str
    score: float
    metadata: EmbeddingMetadata


class QueryResult(BaseModel):
    """Matches ordered by descending cosine similarity.

    Attributes:
        matches: The hits, best first.
        engine:  Name of the backend that served the query.
    """

    matches: list[QueryMatch] = []
    engine: str | None = None


class UpsertResult(BaseModel):
    success: bool = True
    upserted_count: int = 0
    engine: str | None = None


class DeleteResult(BaseModel):
    success: bool = True
    deleted_count: int = 0
    engine: str | None = None
