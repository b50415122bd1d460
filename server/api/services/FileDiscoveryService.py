"""File discovery: decides which documents an edit request should look at."""

import asyncio

from shared.clients.dms.DMSClientInterface import DMSClientInterface
from shared.clients.dms.models.Document import DocumentDetails
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface, EmbedPurpose
from shared.clients.rag.VectorStore import VectorStore
from shared.errors import ServiceError, TransientServiceError, ValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.models.edit import CandidateDocument, DocumentOrigin, ExplicitDocumentRef


class FileDiscoveryService:
    """Blends explicit references, similarity search and a by-name fallback into one candidate list."""

    def __init__(
        self,
        helper_config: HelperConfig,
        dms_client: DMSClientInterface,
        vector_store: VectorStore,
        embed_client: EmbedClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._dms = dms_client
        self._vector_store = vector_store
        self._embed = embed_client
        self._top_k = int(helper_config.get_number_val("EDIT_DISCOVERY_TOP_K", default=10))
        self._fallback_limit = int(helper_config.get_number_val("EDIT_FALLBACK_LIMIT", default=5))

    ##########################################
    ################ CORE ####################
    ##########################################

    async def discover(
        self,
        request_text: str,
        explicit_docs: list[ExplicitDocumentRef],
        collection_id: str | None,
    ) -> list[CandidateDocument]:
        """Collect the candidate documents for an edit request.

        Explicit references come first, then similarity matches, then, only when
        similarity search found nothing, the first documents of the collection by
        name. Candidates are unique by document id in first-seen order.

        Args:
            request_text (str): The user's edit request.
            explicit_docs (list[ExplicitDocumentRef]): Documents the user referenced.
            collection_id (str | None): The collection to work in.

        Returns:
            list[CandidateDocument]: Candidates with their full content.

        Raises:
            ValidationError: If no collection id is given.
        """
        if not collection_id:
            raise ValidationError("A collection id is required to edit documents.")
        collection_id = str(collection_id)

        explicit = await self._resolve_explicit(explicit_docs, collection_id)
        seen = {doc.id for doc in explicit}
        match_count, retrieved = await self._retrieve_similar(request_text, collection_id, seen)

        fallback: list[DocumentDetails] = []
        if match_count == 0:
            fallback = await self._fallback_documents(collection_id)

        candidates: list[CandidateDocument] = []
        known: set[str] = set()
        for origin, documents in (
            (DocumentOrigin.EXPLICIT, explicit),
            (DocumentOrigin.RETRIEVED, retrieved),
            (DocumentOrigin.FALLBACK, fallback),
        ):
            for doc in documents:
                if doc.id in known:
                    continue
                known.add(doc.id)
                candidates.append(
                    CandidateDocument(document_id=doc.id, name=doc.name, content=doc.content, origin=origin)
                )

        self.logging.info(
            "Discovered %d candidate(s) in collection %s: %d explicit, %d retrieved, %d fallback.",
            len(candidates), collection_id, len(explicit), len(retrieved), len(fallback),
        )
        return candidates

    ##########################################
    ############### STAGES ###################
    ##########################################

    async def _resolve_explicit(self, refs: list[ExplicitDocumentRef], collection_id: str) -> list[DocumentDetails]:
        """Fetch referenced documents by id, or look them up by name in the collection."""
        documents: list[DocumentDetails] = []
        listing: list[DocumentDetails] | None = None
        for ref in refs:
            if ref.document_id:
                document = await self._fetch_or_none(ref.document_id)
            elif ref.name:
                if listing is None:
                    listing = await self._list_or_empty(collection_id)
                document = next((doc for doc in listing if doc.name == ref.name), None)
            else:
                continue
            if document is None:
                self.logging.warning("Referenced document %s not found, ignoring it.", ref.document_id or ref.name)
                continue
            if document.collection_id != collection_id:
                self.logging.warning(
                    "Referenced document id=%s belongs to collection %s, not %s. Ignoring it.",
                    document.id, document.collection_id, collection_id,
                )
                continue
            documents.append(document)
        return documents

    async def _retrieve_similar(self, request_text: str, collection_id: str, exclude: set[str]) -> tuple[int, list[DocumentDetails]]:
        """Similarity search scoped to the collection.

        Embedding or vector store outages are logged and yield no matches, so the
        caller degrades to the fallback list.

        Returns:
            tuple[int, list[DocumentDetails]]: The number of matches and the fetched
                documents not in exclude.
        """
        try:
            vector = await self._embed.do_embed_text(request_text, purpose=EmbedPurpose.QUERY)
            result = await self._vector_store.query(vector, top_k=self._top_k, collection_id=collection_id)
        except TransientServiceError as exc:
            self.logging.warning("Similarity search unavailable, using fallback documents: %s", exc)
            return 0, []

        self.logging.debug("Similarity search served by '%s' with %d match(es).", result.engine, len(result.matches))
        # explicit documents already carry their content
        ids = [m.metadata.document_id for m in result.matches if m.metadata.document_id not in exclude]
        fetched = await asyncio.gather(*[self._fetch_or_none(document_id) for document_id in ids])
        documents = [doc for doc in fetched if doc is not None and doc.collection_id == collection_id]
        return len(result.matches), documents

    async def _fallback_documents(self, collection_id: str) -> list[DocumentDetails]:
        documents = await self._list_or_empty(collection_id)
        documents = sorted(documents, key=lambda doc: doc.name)[: self._fallback_limit]
        self.logging.info("Falling back to %d document(s) of collection %s by name.", len(documents), collection_id)
        return documents

    ##########################################
    ############### HELPERS ##################
    ##########################################

    async def _fetch_or_none(self, document_id: str) -> DocumentDetails | None:
        try:
            return await self._dms.do_fetch_document(document_id)
        except ServiceError as exc:
            self.logging.warning("Fetching document id=%s failed: %s", document_id, exc)
            return None

    async def _list_or_empty(self, collection_id: str) -> list[DocumentDetails]:
        try:
            return await self._dms.do_fetch_documents(collection_id)
        except ServiceError as exc:
            self.logging.warning("Listing documents of collection %s failed: %s", collection_id, exc)
            return []
