"""Pydantic models of the retrieval-augmented editing pipeline.

Field names are snake_case in Python and camelCase on the wire, which is what
the generation service is instructed to answer with and what the editor UI reads.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, StrictStr, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DocumentOrigin(str, Enum):
    """How a candidate document entered the edit request. Kept for observability only."""

    EXPLICIT = "explicit"
    RETRIEVED = "retrieved"
    FALLBACK = "fallback"


class ReplacementType(str, Enum):
    """Coarse size class of a minimized anchor, a hint for the editor UI."""

    WORD = "word"
    PHRASE = "phrase"
    SENTENCE = "sentence"
    BLOCK = "block"


class CandidateDocument(CamelModel):
    document_id: str
    name: str
    content: str
    origin: DocumentOrigin


class RawChange(CamelModel):
    """One replacement proposed by the generation service.

    old_content must occur verbatim in the document; a missing value defaults to
    "" and is discarded later as an unknown anchor. An entry with non-string values
    fails validation and is dropped on its own.
    """

    old_content: StrictStr = ""
    new_content: StrictStr


class GenerationReply(CamelModel):
    """Envelope of a generation reply: {"changes": [...]}.

    Entries stay raw here so one bad entry does not sink its siblings.
    """

    changes: list[Any] = []


class MinimizedChange(CamelModel):
    old_content: str
    new_content: str
    minimized: bool


class ResolvedSuggestion(CamelModel):
    """A change bound to one occurrence of its anchor, ready for the editor.

    old_content_full/new_content_full are the pair as generated; old_content/new_content
    the minimized pair used for application. occurrence_index is the zero-based
    position, in document order, of the occurrence of old_content_full this targets.
    """

    id: str
    document_id: str
    document_name: str
    old_content_full: str
    new_content_full: str
    old_content: str
    new_content: str
    occurrence_index: int
    replacement_type: ReplacementType
    minimized: bool = False


class ExplicitDocumentRef(CamelModel):
    """A document the user pointed at, by id or, failing that, by name."""

    document_id: str | None = None
    name: str | None = None

    @field_validator("document_id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value) if value is not None else value


class EditRequest(CamelModel):
    text: str
    collection_id: str | None = None
    documents: list[ExplicitDocumentRef] = []

    @field_validator("collection_id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value) if value is not None else value


class EditPhase(str, Enum):
    """Stage the orchestrator finished in."""

    DISCOVERY = "discovery"
    GENERATION = "generation"
    SUMMARY = "summary"


class EditSummary(CamelModel):
    files_analyzed: int
    suggestions_made: int
    phase: EditPhase


class FileToOpen(CamelModel):
    document_id: str
    name: str
    content: str


class EditResponse(CamelModel):
    """What the editor UI receives for an edit request."""

    result_message: str
    edit_summary: EditSummary
    suggestions: list[ResolvedSuggestion] = []
    files_to_open: list[FileToOpen] = []
