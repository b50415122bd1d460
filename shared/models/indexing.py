"""Pydantic models for indexing results and document events."""

from enum import Enum

from pydantic import field_validator

from shared.models.edit import CamelModel


class IndexStatus(str, Enum):
    INDEXED = "indexed"
    REMOVED = "removed"
    EMPTY = "empty"
    NOT_FOUND = "not_found"
    FAILED = "failed"


class IndexResult(CamelModel):
    """Outcome of an indexing operation.

    Attributes:
        success:       False only when the operation could not be carried out.
        status:        What happened; EMPTY and NOT_FOUND are successful no-ops.
        message:       Human-readable summary.
        indexed_count: Records written (or removed, for removals).
        failed_count:  Documents whose embedding failed (collection indexing only).
    """

    success: bool
    status: IndexStatus
    message: str
    indexed_count: int = 0
    failed_count: int = 0


class DocumentEvent(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class WebhookRequest(CamelModel):
    """Document change notification sent by the document store."""

    document_id: str
    event: DocumentEvent = DocumentEvent.UPDATED

    @field_validator("document_id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value) if value is not None else value
