"""Indexing service.

Reads documents from the document store, embeds each document's full text as one
vector, and writes the resulting records into the vector store. Invoked on
document create/update/delete events and for whole-collection re-indexing.
"""

import asyncio
import logging

from tenacity import AsyncRetrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_exponential

from shared.clients.dms.DMSClientInterface import DMSClientInterface
from shared.clients.dms.models.Document import DocumentDetails
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface, EmbedPurpose
from shared.clients.rag.VectorStore import VectorStore
from shared.clients.rag.models.EmbeddingRecord import EmbeddingMetadata, EmbeddingRecord, make_record_id
from shared.errors import EmbeddingServiceError, ServiceError
from shared.helper.HelperConfig import HelperConfig
from shared.models.indexing import IndexResult, IndexStatus

UPSERT_BATCH_SIZE = 100  # max records per vector store upsert call
DOC_CONCURRENCY = 5      # max parallel document embeddings
RETRY_WAIT = wait_exponential(multiplier=0.5, max=8)  # 0.5s, 1s, 2s, ... between embedding attempts


class IndexingService:
    """Keeps the vector store in line with the document store."""

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
        self._retries = int(helper_config.get_number_val("INDEX_EMBED_RETRIES", default=2))
        self._max_chars = int(helper_config.get_number_val("EMBED_MODEL_MAX_CHARS", default=0))

    ##########################################
    ############### CORE INDEX ###############
    ##########################################

    async def index_document(self, document_id: str) -> IndexResult:
        """Embed a single document and upsert its record.

        Missing and empty documents are successful no-ops; empty documents are
        never embedded.

        Args:
            document_id (str): The document to index.

        Returns:
            IndexResult: INDEXED, NOT_FOUND, EMPTY, or FAILED.
        """
        self.logging.info("Starting indexing for document id=%s", document_id)
        try:
            document = await self._dms.do_fetch_document(document_id)
        except ServiceError as exc:
            self.logging.error("Fetching document id=%s for indexing failed: %s", document_id, exc)
            return IndexResult(success=False, status=IndexStatus.FAILED, message="Failed to fetch document.")

        if document is None:
            return IndexResult(success=True, status=IndexStatus.NOT_FOUND, message="Document not found or not indexable.")
        if not document.content.strip():
            self.logging.info("Document id=%s ('%s') has no content. Nothing to index.", document.id, document.name)
            return IndexResult(success=True, status=IndexStatus.EMPTY, message="Document has no content to index.")

        try:
            record = await self._build_record(document)
        except EmbeddingServiceError as exc:
            self.logging.error("Embedding failed for document id=%s ('%s'): %s", document.id, document.name, exc)
            return IndexResult(success=False, status=IndexStatus.FAILED, message="Failed to index document.", failed_count=1)

        try:
            await self._vector_store.upsert([record])
        except ServiceError as exc:
            self.logging.error("Upsert failed for document id=%s: %s", document.id, exc)
            return IndexResult(success=False, status=IndexStatus.FAILED, message="Failed to index document.")

        self.logging.info("Indexed document id=%s ('%s').", document.id, document.name)
        return IndexResult(success=True, status=IndexStatus.INDEXED, message=f"Indexed document {document.name}.", indexed_count=1)

    async def index_collection(self, collection_id: str) -> IndexResult:
        """Embed and upsert every non-empty document of a collection.

        A document whose embedding fails is skipped and counted; it does not
        abort the rest of the collection.

        Args:
            collection_id (str): The collection to index.

        Returns:
            IndexResult: Aggregate counts of indexed and failed documents.
        """
        self.logging.info("Starting indexing for collection id=%s", collection_id)
        try:
            documents = await self._dms.do_fetch_documents(collection_id)
        except ServiceError as exc:
            self.logging.error("Listing collection id=%s failed: %s", collection_id, exc)
            return IndexResult(success=False, status=IndexStatus.FAILED, message="Failed to list documents.")

        indexable = [doc for doc in documents if doc.content.strip()]
        if not indexable:
            self.logging.info("No content to index in collection id=%s.", collection_id)
            return IndexResult(success=True, status=IndexStatus.EMPTY, message="No documents to index.")

        self.logging.info("Embedding %d of %d documents of collection id=%s...", len(indexable), len(documents), collection_id)
        sem = asyncio.Semaphore(DOC_CONCURRENCY)
        results = await asyncio.gather(*[self._embed_document(doc, sem) for doc in indexable])
        records = [record for record in results if record is not None]
        failed = len(results) - len(records)

        if not records:
            return IndexResult(
                success=False,
                status=IndexStatus.FAILED,
                message="Failed to embed any document.",
                failed_count=failed,
            )

        upserted = 0
        try:
            for batch_start in range(0, len(records), UPSERT_BATCH_SIZE):
                batch = records[batch_start: batch_start + UPSERT_BATCH_SIZE]
                await self._vector_store.upsert(batch)
                upserted += len(batch)
        except ServiceError as exc:
            self.logging.error("Upsert failed for collection id=%s after %d records: %s", collection_id, upserted, exc)
            return IndexResult(
                success=False,
                status=IndexStatus.FAILED,
                message="Failed to store embeddings.",
                indexed_count=upserted,
                failed_count=failed,
            )

        self.logging.info(
            "Indexing complete for collection id=%s: %d indexed, %d failed.", collection_id, upserted, failed,
        )
        return IndexResult(
            success=True,
            status=IndexStatus.INDEXED,
            message=f"Indexed {upserted} documents.",
            indexed_count=upserted,
            failed_count=failed,
        )

    async def remove_from_index(self, document_id: str) -> IndexResult:
        """Delete a document's record. A record that does not exist is not an error."""
        record_id = make_record_id(str(document_id))
        try:
            result = await self._vector_store.delete([record_id])
        except ServiceError as exc:
            self.logging.error("Removing document id=%s from the index failed: %s", document_id, exc)
            return IndexResult(success=False, status=IndexStatus.FAILED, message="Failed to remove document from index.")
        self.logging.info("Removed document id=%s from the index (%d record(s)).", document_id, result.deleted_count)
        return IndexResult(
            success=True,
            status=IndexStatus.REMOVED,
            message="Removed document from index.",
            indexed_count=result.deleted_count,
        )

    ##########################################
    ############### HELPERS ##################
    ##########################################

    async def _embed_document(self, document: DocumentDetails, sem: asyncio.Semaphore) -> EmbeddingRecord | None:
        async with sem:
            try:
                return await self._build_record(document)
            except EmbeddingServiceError as exc:
                self.logging.error("Embedding failed for document id=%s ('%s'): %s", document.id, document.name, exc)
                return None

    async def _build_record(self, document: DocumentDetails) -> EmbeddingRecord:
        text = document.content[: self._max_chars] if self._max_chars > 0 else document.content
        vector = await self._embed_with_retry(text)
        return EmbeddingRecord(
            id=make_record_id(document.id),
            vector=vector,
            metadata=EmbeddingMetadata(
                collection_id=document.collection_id,
                document_id=document.id,
                document_name=document.name,
            ),
        )

    async def _embed_with_retry(self, text: str) -> list[float]:
        """Embed a document text, retrying INDEX_EMBED_RETRIES times with exponential backoff.

        Raises:
            EmbeddingServiceError: When the last attempt fails.
        """
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._retries + 1),
            wait=RETRY_WAIT,
            retry=retry_if_exception_type(EmbeddingServiceError),
            before_sleep=before_sleep_log(self.logging, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                return await self._embed.do_embed_text(text, purpose=EmbedPurpose.DOCUMENT)
        raise EmbeddingServiceError("Embedding retries exhausted.")
