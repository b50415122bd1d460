"""EmbeddingRecord model: one document vector with the metadata used for collection scoping."""

from pydantic import BaseModel, field_validator

RECORD_ID_PREFIX = "doc-"


def make_record_id(document_id: str) -> str:
    """Build the deterministic record id of a document.

    Re-indexing the same document yields the same id, so an upsert overwrites
    the previous vector instead of adding a duplicate.

    Args:
        document_id (str): Document ID as assigned by the document store.

    Returns:
        str: The record id, e.g. "doc-42".
    """
    return f"{RECORD_ID_PREFIX}{document_id}"


class EmbeddingMetadata(BaseModel):
    """Metadata stored alongside each vector.

    Attributes:
        collection_id: Owning collection (project). Records are only returned by
                       searches scoped to this collection.
        document_id:   Document ID as assigned by the document store.
        document_name: Human-readable document name.
    """

    collection_id: str
    document_id: str
    document_name: str

    @field_validator("collection_id", "document_id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value) if value is not None else value


class EmbeddingRecord(BaseModel):
    """A vector with its deterministic id and metadata."""

    id: str
    vector: list[float]
    metadata: EmbeddingMetadata
