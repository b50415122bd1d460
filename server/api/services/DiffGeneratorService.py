"""Diff generator: asks the generation service for replacement pairs per document."""

import json
import logging
import re

import pydantic

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.errors import MalformedModelOutputError
from shared.helper.HelperConfig import HelperConfig
from shared.models.edit import CandidateDocument, GenerationReply, RawChange

logger = logging.getLogger("edit_bridge")

_CODE_FENCE = re.compile(r"^\s*```[A-Za-z0-9_-]*\s*\n(?P<body>.*?)\n?\s*```\s*$", re.DOTALL)

SYSTEM_INSTRUCTIONS = """You are an expert editor and an AI assistant that specializes in editing code and text documents.
Your task is to analyze the user's edit request and the provided document content, and then generate a precise set of changes to fulfill the request.

You MUST follow these rules:
1.  Analyze the user's request: "{request_text}".
2.  Analyze the full content of the document: `{document_name}`.
3.  Identify the exact parts of the document that need to be changed.
4.  For each change, provide the original content to be replaced (`oldContent`) and the new content to insert (`newContent`).
5.  The `oldContent` MUST be an exact, case-sensitive substring of the original document.
6.  You MUST output your response as a valid JSON object. Do not include any text outside the JSON object.
7.  The JSON object must have a single key, "changes", which is an array of change objects.
8.  Each change object must have two string keys: "oldContent" and "newContent".
9.  If NO changes are needed (e.g. the document is already correct or the request is irrelevant to it), return an empty array: {{"changes": []}}.
10. Make sure `newContent` keeps the indentation and formatting of the surrounding content.
11. Only provide changes for this document. Do not suggest creating or modifying other documents.
12. Be precise. Do not replace more than necessary. `oldContent` should be as small as possible while still locating the change.

Example response:
{{
  "changes": [
    {{"oldContent": "const oldVariable = 'value';", "newContent": "const newVariable = 'newValue';"}},
    {{"oldContent": "<p>Some old text</p>", "newContent": "<p>Some new, updated text</p>"}}
  ]
}}
"""


def unwrap_code_fence(text: str) -> str:
    """Strip a surrounding markdown code fence, which some models add despite JSON mode."""
    match = _CODE_FENCE.match(text)
    return match.group("body") if match else text.strip()


def parse_generation_reply(raw_reply: str) -> list[RawChange]:
    """Parse and validate a generation reply.

    Only the "changes" array is consulted. Each entry is validated on its own; an
    entry that is not a pair of strings is logged and dropped, its siblings are kept.

    Raises:
        MalformedModelOutputError: If the reply is not a JSON object or its changes are not a list.
    """
    try:
        payload = json.loads(unwrap_code_fence(raw_reply))
    except json.JSONDecodeError as exc:
        raise MalformedModelOutputError(f"Reply is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise MalformedModelOutputError(f"Reply is a JSON {type(payload).__name__}, expected an object.")
    try:
        reply = GenerationReply.model_validate({"changes": payload.get("changes") or []})
    except pydantic.ValidationError as exc:
        raise MalformedModelOutputError("Reply changes are not a list.") from exc

    changes: list[RawChange] = []
    for position, entry in enumerate(reply.changes):
        try:
            changes.append(RawChange.model_validate(entry))
        except pydantic.ValidationError as exc:
            logger.warning("Dropping change #%d of the reply: %d schema error(s).", position, exc.error_count())
    return changes


class DiffGeneratorService:
    """Proposes anchored replacement pairs for one document at a time."""

    def __init__(self, helper_config: HelperConfig, llm_client: LLMClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._llm = llm_client
        self._min_content_length = int(helper_config.get_number_val("EDIT_MIN_CONTENT_LENGTH", default=10))

    ##########################################
    ################ PROMPT ##################
    ##########################################

    def build_messages(self, document: CandidateDocument, request_text: str) -> list[dict]:
        system = SYSTEM_INSTRUCTIONS.format(request_text=request_text, document_name=document.name)
        user = f"Here is the document `{document.name}`:\n\n```\n{document.content}\n```"
        return [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ]

    ##########################################
    ################ CORE ####################
    ##########################################

    async def generate(self, document: CandidateDocument, request_text: str) -> list[RawChange]:
        """Ask the generation service for the changes the request implies for a document.

        Documents shorter than EDIT_MIN_CONTENT_LENGTH are skipped without a call.
        A reply that cannot be parsed counts as no changes. Changes whose anchor is
        empty or not found verbatim in the document are discarded.

        Args:
            document (CandidateDocument): The candidate document, with content.
            request_text (str): The user's edit request.

        Returns:
            list[RawChange]: Validated changes in reply order.

        Raises:
            GenerationServiceError: If the generation service cannot be reached or fails.
        """
        if len(document.content) < self._min_content_length:
            self.logging.info("Skipping document '%s': content too short to edit.", document.name)
            return []

        self.logging.info("Generating changes for document '%s'...", document.name)
        raw_reply = await self._llm.do_chat(self.build_messages(document, request_text), json_output=True)
        try:
            changes = parse_generation_reply(raw_reply)
        except MalformedModelOutputError as exc:
            self.logging.warning(
                "Malformed generation reply for document '%s': %s. Reply starts with: %r",
                document.name, exc, raw_reply[:200],
            )
            return []

        if not changes:
            self.logging.info("No changes needed for document '%s'.", document.name)
            return []

        valid: list[RawChange] = []
        for change in changes:
            if not change.old_content or change.old_content not in document.content:
                self.logging.warning(
                    "Discarding change for '%s': anchor not found in document: %r",
                    document.name, change.old_content[:80],
                )
                continue
            if change.old_content == change.new_content:
                self.logging.debug("Discarding no-op change for '%s'.", document.name)
                continue
            valid.append(change)
        self.logging.info("Received %d change(s) for '%s', %d kept.", len(changes), document.name, len(valid))
        return valid
