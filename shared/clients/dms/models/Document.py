"""Generic document model, independent of the document store engine."""

from pydantic import BaseModel, field_validator


class DocumentBase(BaseModel):
    """
    A document as listed by a document store client.
    """
    engine: str
    id: str
    name: str
    collection_id: str

    @field_validator("id", "collection_id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        # stores hand out numeric ids, the vector metadata keeps strings
        return str(value) if value is not None else value


class DocumentDetails(DocumentBase):
    """
    A document with its full text content.
    """
    content: str = ""
    parent_id: str | None = None
    updated_at: str | None = None

    @field_validator("content", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return value if value is not None else ""
