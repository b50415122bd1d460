import logging

import pytest

from conftest import FakeDMSClient, FakeEmbedClient, FlakyBackend, make_document
from services.rag_indexing import rag_indexing
from services.rag_indexing.IndexingService import IndexingService
from shared.clients.rag.VectorStore import VectorStore
from shared.clients.rag.memory.RAGClientMemory import RAGClientMemory
from shared.errors import TransientServiceError
from shared.logging.logging_setup import ColorLogger
from shared.models.indexing import IndexStatus


@pytest.fixture
def memory(helper_config):
    return RAGClientMemory(helper_config=helper_config)


@pytest.fixture
def dms():
    return FakeDMSClient([
        make_document("1", "intro.md", "Welcome to the project."),
        make_document("2", "empty.md", "   "),
        make_document("3", "guide.md", "How to use the tool."),
        make_document("9", "other.md", "Another project.", collection_id="p2"),
    ])


@pytest.fixture
def embed():
    return FakeEmbedClient()


@pytest.fixture
def service(helper_config, dms, memory, embed):
    store = VectorStore(helper_config=helper_config, backends=[memory])
    return IndexingService(helper_config=helper_config, dms_client=dms, vector_store=store, embed_client=embed)


@pytest.mark.asyncio
async def test_index_document_writes_one_record(service, memory, embed):
    result = await service.index_document("1")

    assert result.success is True
    assert result.status == IndexStatus.INDEXED
    assert result.indexed_count == 1
    assert memory.get_collection_record_ids("p1") == ["doc-1"]
    assert embed.calls == [("Welcome to the project.", "document")]


@pytest.mark.asyncio
async def test_reindexing_overwrites(service, memory):
    await service.index_document("1")
    await service.index_document("1")
    assert memory.count() == 1


@pytest.mark.asyncio
async def test_empty_document_is_not_embedded(service, memory, embed):
    result = await service.index_document("2")

    assert result.success is True
    assert result.status == IndexStatus.EMPTY
    assert embed.calls == []
    assert memory.count() == 0


@pytest.mark.asyncio
async def test_missing_document(service):
    result = await service.index_document("404")
    assert result.success is True
    assert result.status == IndexStatus.NOT_FOUND


@pytest.mark.asyncio
async def test_embedding_is_retried(service, embed, memory):
    embed.failures = 2
    result = await service.index_document("1")
    assert result.status == IndexStatus.INDEXED
    assert len(embed.calls) == 3
    assert memory.count() == 1


@pytest.mark.asyncio
async def test_each_retry_is_logged_before_waiting(service, embed, caplog):
    embed.failures = 2
    with caplog.at_level(logging.WARNING, logger="edit_bridge.tests"):
        result = await service.index_document("1")

    assert result.status == IndexStatus.INDEXED
    retries = [r for r in caplog.records if r.getMessage().startswith("Retrying")]
    assert len(retries) == 2
    assert all(r.levelno == logging.WARNING for r in retries)


@pytest.mark.asyncio
async def test_embedding_gives_up_after_retries(service, embed, memory):
    embed.failures = 3
    result = await service.index_document("1")
    assert result.success is False
    assert result.status == IndexStatus.FAILED
    assert len(embed.calls) == 3
    assert memory.count() == 0


@pytest.mark.asyncio
async def test_index_collection_continues_past_failures(service, embed, memory):
    embed.fail_texts = {"Welcome to the project."}

    result = await service.index_collection("p1")

    assert result.success is True
    assert result.indexed_count == 1
    assert result.failed_count == 1
    assert memory.get_collection_record_ids("p1") == ["doc-3"]
    assert memory.get_collection_record_ids("p2") == []


@pytest.mark.asyncio
async def test_index_collection_without_content(service):
    result = await service.index_collection("unknown")
    assert result.success is True
    assert result.status == IndexStatus.EMPTY


@pytest.mark.asyncio
async def test_index_collection_listing_failure(service, dms):
    dms.list_error = TransientServiceError("store down", status_code=503)
    result = await service.index_collection("p1")
    assert result.success is False
    assert result.status == IndexStatus.FAILED


@pytest.mark.asyncio
async def test_remove_from_index_tolerates_missing(service, memory):
    await service.index_document("1")

    removed = await service.remove_from_index("1")
    missing = await service.remove_from_index("1")

    assert removed.success is True and removed.indexed_count == 1
    assert missing.success is True and missing.indexed_count == 0
    assert memory.count() == 0


@pytest.mark.asyncio
async def test_store_failure_is_reported(helper_config, dms, embed):
    backend = FlakyBackend(helper_config=helper_config)
    backend.fail = True
    store = VectorStore(helper_config=helper_config, backends=[backend])
    service = IndexingService(helper_config=helper_config, dms_client=dms, vector_store=store, embed_client=embed)

    result = await service.index_document("1")

    assert result.success is False
    assert result.status == IndexStatus.FAILED


##########################################
################ RUNNER ##################
##########################################

@pytest.mark.asyncio
async def test_runner_aborts_when_required_clients_fail(env, monkeypatch, caplog):
    env.setenv("INDEX_COLLECTION_IDS", "[p1]")
    monkeypatch.setattr(
        rag_indexing, "setup_logging", lambda: ColorLogger(logging.getLogger("edit_bridge.tests.runner"))
    )

    async def failing_boot(client, helper_config):
        raise TransientServiceError("embedding service down", status_code=503)

    monkeypatch.setattr(rag_indexing, "boot_client", failing_boot)

    with caplog.at_level(logging.ERROR, logger="edit_bridge.tests.runner"):
        assert await rag_indexing.main() == 1

    record = caplog.records[-1]
    assert record.msg == "Error booting required clients: %s. Aborting."
    assert "embedding service down" in record.getMessage()


@pytest.mark.asyncio
async def test_runner_needs_collection_ids(env, monkeypatch):
    env.setenv("INDEX_COLLECTION_IDS", "[]")
    monkeypatch.setattr(
        rag_indexing, "setup_logging", lambda: ColorLogger(logging.getLogger("edit_bridge.tests.runner"))
    )
    assert await rag_indexing.main() == 1
