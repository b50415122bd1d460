"""Diff minimization and occurrence resolution.

Turns the raw (old_content, new_content) pairs proposed for a document into
suggestions the editor can apply: each pair is reduced to the smallest span that
differs, and bound to one concrete occurrence of its anchor in the document.

Everything here is a pure function of its arguments. The only state is the
per-document occurrence counter map, which the caller owns.
"""

import logging
import uuid

from shared.errors import AmbiguousOccurrenceError, AnchorNotFoundError
from shared.models.edit import CandidateDocument, MinimizedChange, RawChange, ReplacementType, ResolvedSuggestion

logger = logging.getLogger("edit_bridge")

# upper bounds of the minimized anchor length per replacement type
WORD_MAX_LENGTH = 15
PHRASE_MAX_LENGTH = 50
SENTENCE_MAX_LENGTH = 150


def _trim_once(old_content: str, new_content: str) -> tuple[str, str]:
    prefix_len = 0
    max_prefix = min(len(old_content), len(new_content))
    while prefix_len < max_prefix and old_content[prefix_len] == new_content[prefix_len]:
        prefix_len += 1
    old_rest = old_content[prefix_len:]
    new_rest = new_content[prefix_len:]

    suffix_len = 0
    max_suffix = min(len(old_rest), len(new_rest))
    while suffix_len < max_suffix and old_rest[-1 - suffix_len] == new_rest[-1 - suffix_len]:
        suffix_len += 1
    return old_rest[: len(old_rest) - suffix_len].strip(), new_rest[: len(new_rest) - suffix_len].strip()


def minimize_diff(old_content: str, new_content: str) -> MinimizedChange:
    """Reduce a replacement pair to the span where old and new actually differ.

    The common prefix is trimmed first, then the common suffix of the rest, then
    surrounding whitespace. Stripping can expose a new common prefix or suffix
    (a re-indented line), so the trim repeats until the pair is stable. The
    untrimmed pair is kept when the result could not be located unambiguously: a
    pure insertion (empty old side) or a new side that still contains the old side.

    Args:
        old_content (str): Anchor text as proposed.
        new_content (str): Replacement text as proposed.

    Returns:
        MinimizedChange: The pair to apply and whether it was minimized.
    """
    old_trimmed, new_trimmed = old_content, new_content
    while True:
        trimmed = _trim_once(old_trimmed, new_trimmed)
        if trimmed == (old_trimmed, new_trimmed):
            break
        old_trimmed, new_trimmed = trimmed

    if old_trimmed == "" and new_trimmed != "":
        return MinimizedChange(old_content=old_content, new_content=new_content, minimized=False)
    if old_trimmed in new_trimmed and old_trimmed != new_trimmed:
        return MinimizedChange(old_content=old_content, new_content=new_content, minimized=False)
    return MinimizedChange(old_content=old_trimmed, new_content=new_trimmed, minimized=True)


def find_all_occurrences(source: str, search: str) -> list[int]:
    """Start indices of every occurrence of search in source, in document order.

    Each scan restarts one character after the previous hit, so overlapping
    occurrences ("aa" in "aaa") are all reported.
    """
    indices: list[int] = []
    if not search:
        return indices
    index = source.find(search)
    while index != -1:
        indices.append(index)
        index = source.find(search, index + 1)
    return indices


def classify_replacement(length: int) -> ReplacementType:
    if length <= WORD_MAX_LENGTH:
        return ReplacementType.WORD
    if length <= PHRASE_MAX_LENGTH:
        return ReplacementType.PHRASE
    if length <= SENTENCE_MAX_LENGTH:
        return ReplacementType.SENTENCE
    return ReplacementType.BLOCK


def resolve_change(
    document_content: str,
    change: RawChange,
    counters: dict[str, int],
    document_id: str,
    document_name: str,
) -> ResolvedSuggestion:
    """Minimize one change and bind it to the next free occurrence of its anchor.

    counters maps each untrimmed anchor text to the number of occurrences already
    assigned within this document. It is updated in place on success only.

    Raises:
        AnchorNotFoundError: The anchor does not occur in the document.
        AmbiguousOccurrenceError: Every occurrence of the anchor is already assigned.
    """
    anchor = change.old_content
    occurrences = find_all_occurrences(document_content, anchor)
    if not occurrences:
        raise AnchorNotFoundError(anchor)
    assigned = counters.get(anchor, 0)
    if assigned >= len(occurrences):
        raise AmbiguousOccurrenceError(anchor, len(occurrences))
    counters[anchor] = assigned + 1

    minimized = minimize_diff(change.old_content, change.new_content)
    return ResolvedSuggestion(
        id=str(uuid.uuid4()),
        document_id=document_id,
        document_name=document_name,
        old_content_full=change.old_content,
        new_content_full=change.new_content,
        old_content=minimized.old_content,
        new_content=minimized.new_content,
        occurrence_index=assigned,
        replacement_type=classify_replacement(len(minimized.old_content)),
        minimized=minimized.minimized,
    )


def resolve_changes(
    document: CandidateDocument,
    changes: list[RawChange],
    counters: dict[str, int] | None = None,
) -> list[ResolvedSuggestion]:
    """Resolve a document's batch of changes in order, dropping the unresolvable ones.

    Args:
        document (CandidateDocument): The document the changes were generated for.
        changes (list[RawChange]): Validated changes, in generation order.
        counters (dict[str, int] | None): Occurrence counters; a fresh map when omitted.

    Returns:
        list[ResolvedSuggestion]: One suggestion per resolvable change, in input order.
    """
    counters = {} if counters is None else counters
    suggestions: list[ResolvedSuggestion] = []
    for change in changes:
        try:
            suggestions.append(resolve_change(document.content, change, counters, document.document_id, document.name))
        except (AnchorNotFoundError, AmbiguousOccurrenceError) as exc:
            logger.warning("Skipping change for document '%s': %s", document.name, exc)
    return suggestions
