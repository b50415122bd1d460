"""Edit orchestrator: discovery, per-document generation, resolution, summary."""

import asyncio
import uuid
from enum import Enum

from server.api.services.DiffGeneratorService import DiffGeneratorService
from server.api.services.FileDiscoveryService import FileDiscoveryService
from server.api.services.diff_resolution import resolve_changes
from shared.helper.HelperConfig import HelperConfig
from shared.models.edit import (
    CandidateDocument,
    EditPhase,
    EditRequest,
    EditResponse,
    EditSummary,
    FileToOpen,
    RawChange,
    ResolvedSuggestion,
)

NO_FILES_MESSAGE = (
    "I couldn't identify any files that need to be edited based on your request. "
    "Please specify which files you'd like me to modify or provide more context about the changes you want to make."
)
NO_CHANGES_MESSAGE = (
    "I analyzed the relevant files but no changes were needed. This could mean the requested changes are "
    "already applied, or the query wasn't specific enough to identify what needs to be modified."
)
NOTHING_RESOLVED_MESSAGE = "I analyzed the files but found no changes were needed. The code may already be correct."


class EditState(str, Enum):
    IDLE = "idle"
    DISCOVERING = "discovering"
    GENERATING = "generating"
    RESOLVING = "resolving"
    DONE = "done"


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count != 1 else ''}"


def build_result_message(suggestions: list[ResolvedSuggestion]) -> str:
    """Human-readable summary of the prepared suggestions."""
    if not suggestions:
        return NOTHING_RESOLVED_MESSAGE
    names = list(dict.fromkeys(s.document_name for s in suggestions))
    return (
        f"I've prepared {_plural(len(suggestions), 'change')} in {_plural(len(names), 'file')}: "
        f"{', '.join(names)}. Please review the suggestions in the editor."
    )


class EditService:
    """Runs one edit request through Idle, Discovering, Generating, Resolving and Done.

    Generation fans out to one task per candidate document. A failing or timed-out
    document contributes no changes; only discovery failures abort the request.
    """

    def __init__(
        self,
        helper_config: HelperConfig,
        discovery_service: FileDiscoveryService,
        generator_service: DiffGeneratorService,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._discovery = discovery_service
        self._generator = generator_service
        self._timeout = float(helper_config.get_number_val("EDIT_GENERATION_TIMEOUT", default=120))
        self._concurrency = int(helper_config.get_number_val("EDIT_DOC_CONCURRENCY", default=5))

    ##########################################
    ################ CORE ####################
    ##########################################

    async def do_edit(self, request: EditRequest) -> EditResponse:
        """Turn an edit request into reviewable suggestions.

        Args:
            request (EditRequest): Request text, collection and explicit references.

        Returns:
            EditResponse: Summary message, counts, suggestions in discovery order and
                the documents the editor should open.

        Raises:
            ValidationError: If the request names no collection.
        """
        run_id = uuid.uuid4().hex[:8]
        state = EditState.IDLE
        self.logging.info("[%s] Edit request for collection %s: %r", run_id, request.collection_id, request.text[:80])

        state = self._advance(run_id, state, EditState.DISCOVERING)
        candidates = await self._discovery.discover(request.text, request.documents, request.collection_id)
        if not candidates:
            self._advance(run_id, state, EditState.DONE)
            return EditResponse(
                result_message=NO_FILES_MESSAGE,
                edit_summary=EditSummary(files_analyzed=0, suggestions_made=0, phase=EditPhase.DISCOVERY),
            )

        state = self._advance(run_id, state, EditState.GENERATING)
        changes_per_document = await self._generate_all(run_id, candidates, request.text)
        if not any(changes_per_document):
            self._advance(run_id, state, EditState.DONE)
            return EditResponse(
                result_message=NO_CHANGES_MESSAGE,
                edit_summary=EditSummary(
                    files_analyzed=len(candidates), suggestions_made=0, phase=EditPhase.GENERATION,
                ),
            )

        state = self._advance(run_id, state, EditState.RESOLVING)
        suggestions: list[ResolvedSuggestion] = []
        for document, changes in zip(candidates, changes_per_document):
            # occurrence counters never cross documents
            suggestions.extend(resolve_changes(document, changes, counters={}))

        edited_ids = {s.document_id for s in suggestions}
        files_to_open = [
            FileToOpen(document_id=doc.document_id, name=doc.name, content=doc.content)
            for doc in candidates
            if doc.document_id in edited_ids
        ]
        self._advance(run_id, state, EditState.DONE)
        self.logging.info(
            "[%s] Prepared %d suggestion(s) in %d of %d document(s).",
            run_id, len(suggestions), len(files_to_open), len(candidates),
        )
        return EditResponse(
            result_message=build_result_message(suggestions),
            edit_summary=EditSummary(
                files_analyzed=len(candidates), suggestions_made=len(suggestions), phase=EditPhase.SUMMARY,
            ),
            suggestions=suggestions,
            files_to_open=files_to_open,
        )

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _advance(self, run_id: str, current: EditState, target: EditState) -> EditState:
        self.logging.debug("[%s] %s -> %s", run_id, current.value, target.value)
        return target

    async def _generate_all(self, run_id: str, candidates: list[CandidateDocument], request_text: str) -> list[list[RawChange]]:
        """Generate changes for every candidate concurrently, results in candidate order."""
        sem = asyncio.Semaphore(self._concurrency)

        async def _generate(document: CandidateDocument) -> list[RawChange]:
            async with sem:
                try:
                    return await asyncio.wait_for(self._generator.generate(document, request_text), timeout=self._timeout)
                except asyncio.TimeoutError:
                    self.logging.warning(
                        "[%s] Generation for '%s' timed out after %.0fs, skipping it.", run_id, document.name, self._timeout,
                    )
                except Exception as exc:
                    self.logging.error("[%s] Generation for '%s' failed, skipping it: %s", run_id, document.name, exc)
                return []

        return list(await asyncio.gather(*[_generate(doc) for doc in candidates]))
