import logging

import pytest
from tenacity import wait_none

from shared.clients.dms.models.Document import DocumentDetails
from shared.clients.rag.memory.RAGClientMemory import RAGClientMemory
from shared.clients.rag.models.EmbeddingRecord import EmbeddingMetadata, EmbeddingRecord, make_record_id
from shared.errors import EmbeddingServiceError, ServiceError
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger

TEST_ENV = {
    "APP_API_KEY": "secret",
    "DMS_ENGINE": "quillmind",
    "DMS_QUILLMIND_BASE_URL": "http://dms.test",
    "DMS_QUILLMIND_API_KEY": "dms-token",
    "EMBED_ENGINE": "ollama",
    "EMBED_MODEL": "nomic-embed-text",
    "EMBED_OLLAMA_BASE_URL": "http://ollama.test",
    "LLM_ENGINE": "gemini",
    "LLM_CHAT_MODEL": "gemini-1.5-pro",
    "LLM_GEMINI_API_KEY": "gemini-key",
    "RAG_ENGINES": "[]",
    "RAG_QDRANT_BASE_URL": "http://qdrant.test",
    "RAG_QDRANT_COLLECTION": "documents",
    "RAG_BREAKER_THRESHOLD": "3",
    "INDEX_EMBED_RETRIES": "2",
}


@pytest.fixture
def env(monkeypatch):
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    return monkeypatch


@pytest.fixture
def helper_config(env) -> HelperConfig:
    return HelperConfig(logger=ColorLogger(logging.getLogger("edit_bridge.tests")))


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    monkeypatch.setattr("services.rag_indexing.IndexingService.RETRY_WAIT", wait_none())


def make_document(document_id, name, content, collection_id="p1") -> DocumentDetails:
    return DocumentDetails(engine="fake", id=document_id, name=name, collection_id=collection_id, content=content)


def make_record(document_id, vector, collection_id="p1", name=None) -> EmbeddingRecord:
    return EmbeddingRecord(
        id=make_record_id(document_id),
        vector=vector,
        metadata=EmbeddingMetadata(
            collection_id=collection_id, document_id=document_id, document_name=name or f"{document_id}.md"
        ),
    )


class FakeDMSClient:
    """In-memory document store with the DMSClientInterface request methods."""

    def __init__(self, documents: list[DocumentDetails]):
        self.documents = {doc.id: doc for doc in documents}
        self.fetch_calls: list[str] = []
        self.list_error: Exception | None = None

    async def do_fetch_document(self, document_id):
        self.fetch_calls.append(str(document_id))
        return self.documents.get(str(document_id))

    async def do_fetch_documents(self, collection_id):
        if self.list_error is not None:
            raise self.list_error
        return [doc for doc in self.documents.values() if doc.collection_id == str(collection_id)]


class FakeEmbedClient:
    """Returns fixed vectors by text; unknown texts get a default vector.

    failures counts how many of the next calls raise EmbeddingServiceError.
    """

    def __init__(self, vectors: dict[str, list[float]] | None = None, default: list[float] | None = None):
        self.vectors = vectors or {}
        self.default = default or [1.0, 0.0, 0.0]
        self.failures = 0
        self.fail_texts: set[str] = set()
        self.calls: list[tuple[str, str]] = []

    async def do_embed_text(self, text, purpose="document"):
        self.calls.append((text, getattr(purpose, "value", purpose)))
        if self.failures > 0:
            self.failures -= 1
            raise EmbeddingServiceError("embedding service unavailable", status_code=503)
        if text in self.fail_texts:
            raise EmbeddingServiceError("cannot embed this text", status_code=500)
        return self.vectors.get(text, self.default)


class FlakyBackend(RAGClientMemory):
    """Memory backend that can be switched to fail and has no native collection filter."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.fail = False
        self.calls = 0

    def _get_engine_name(self) -> str:
        return "Flaky"

    def supports_collection_filter(self) -> bool:
        return False

    def _maybe_fail(self):
        self.calls += 1
        if self.fail:
            raise ServiceError("backend down", status_code=503)

    async def do_upsert(self, records):
        self._maybe_fail()
        return await super().do_upsert(records)

    async def do_delete(self, ids):
        self._maybe_fail()
        return await super().do_delete(ids)

    async def do_query(self, vector, top_k, collection_id=None):
        self._maybe_fail()
        return await super().do_query(vector, top_k, collection_id)
