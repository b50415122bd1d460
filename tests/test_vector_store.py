import pytest

from conftest import FlakyBackend, make_record
from shared.clients.rag.VectorStore import VectorStore
from shared.clients.rag.memory.RAGClientMemory import RAGClientMemory, cosine_similarity
from shared.clients.rag.models.BreakerState import BreakerState
from shared.errors import VectorBackendError


@pytest.fixture
def primary(helper_config):
    return FlakyBackend(helper_config=helper_config)


@pytest.fixture
def memory(helper_config):
    return RAGClientMemory(helper_config=helper_config)


@pytest.fixture
def store(helper_config, primary, memory):
    return VectorStore(helper_config=helper_config, backends=[primary, memory])


##########################################
############### BREAKER ##################
##########################################

def test_breaker_trips_at_threshold():
    breaker = BreakerState(threshold=3)
    assert breaker.record_failure() is False
    assert breaker.record_failure() is False
    assert breaker.record_failure() is True
    assert breaker.available is False
    # no recovery once tripped
    breaker.record_success()
    assert breaker.available is False


def test_breaker_success_resets_counter():
    breaker = BreakerState(threshold=3)
    breaker.record_failure()
    breaker.record_failure()
    breaker.record_success()
    assert breaker.consecutive_failures == 0
    breaker.record_failure()
    assert breaker.available is True


@pytest.mark.asyncio
async def test_failing_primary_is_bypassed_after_threshold(store, primary, memory):
    primary.fail = True
    for i in range(3):
        result = await store.upsert([make_record(str(i), [1.0, 0.0])])
        assert result.success is True
        assert result.engine == "memory"
    assert primary.calls == 3
    assert store.get_breaker("flaky").available is False

    result = await store.upsert([make_record("3", [0.0, 1.0])])

    assert result.success is True
    assert result.engine == "memory"
    assert primary.calls == 3
    assert primary.count() == 0
    assert memory.count() == 4


@pytest.mark.asyncio
async def test_primary_success_resets_breaker(store, primary):
    primary.fail = True
    await store.upsert([make_record("1", [1.0, 0.0])])
    await store.upsert([make_record("2", [1.0, 0.0])])
    primary.fail = False
    result = await store.upsert([make_record("3", [1.0, 0.0])])

    assert result.engine == "flaky"
    breaker = store.get_breaker("flaky")
    assert breaker.consecutive_failures == 0
    assert breaker.available is True


@pytest.mark.asyncio
async def test_injected_breaker_is_used(helper_config, primary, memory):
    breaker = BreakerState(available=False, consecutive_failures=3, threshold=3)
    store = VectorStore(helper_config=helper_config, backends=[primary, memory], breakers={"flaky": breaker})

    await store.upsert([make_record("1", [1.0])])

    assert primary.calls == 0
    assert store.get_breaker("flaky") is breaker


@pytest.mark.asyncio
async def test_all_backends_failing_raises(helper_config, primary):
    primary.fail = True
    store = VectorStore(helper_config=helper_config, backends=[primary])
    with pytest.raises(VectorBackendError):
        await store.query([1.0, 0.0], top_k=3)


@pytest.mark.asyncio
async def test_last_backend_is_tried_even_when_tripped(helper_config, primary):
    primary.fail = True
    store = VectorStore(helper_config=helper_config, backends=[primary])
    for _ in range(4):
        with pytest.raises(VectorBackendError):
            await store.delete(["doc-1"])
    assert primary.calls == 4


@pytest.mark.asyncio
async def test_empty_writes_do_not_touch_backends(store, primary):
    assert (await store.upsert([])).upserted_count == 0
    assert (await store.delete([])).deleted_count == 0
    assert primary.calls == 0


##########################################
################ QUERY ###################
##########################################

@pytest.mark.asyncio
async def test_query_rejects_non_positive_top_k(store):
    with pytest.raises(ValueError):
        await store.query([1.0], top_k=0)


@pytest.mark.asyncio
async def test_collection_isolation_with_overfetch(store, primary):
    # the other collection ranks first
    records = [make_record(f"b{i}", [1.0, 0.0], collection_id="B") for i in range(5)]
    records += [make_record(f"a{i}", [0.9, 0.1 * i], collection_id="A") for i in range(3)]
    await store.upsert(records)

    result = await store.query([1.0, 0.0], top_k=2, collection_id="A")

    assert result.engine == "flaky"
    assert len(result.matches) == 2
    assert all(match.metadata.collection_id == "A" for match in result.matches)
    assert [m.metadata.document_id for m in result.matches] == ["a0", "a1"]


@pytest.mark.asyncio
async def test_collection_isolation_on_memory_backend(store, primary):
    primary.fail = True
    await store.upsert([make_record("x", [1.0, 0.0], collection_id="A"), make_record("y", [1.0, 0.0], collection_id="B")])

    result = await store.query([1.0, 0.0], top_k=10, collection_id="B")

    assert result.engine == "memory"
    assert [m.metadata.document_id for m in result.matches] == ["y"]


@pytest.mark.asyncio
async def test_unscoped_query_returns_all_collections(store):
    await store.upsert([make_record("x", [1.0, 0.0], collection_id="A"), make_record("y", [0.0, 1.0], collection_id="B")])
    result = await store.query([1.0, 0.0], top_k=5)
    assert [m.id for m in result.matches] == ["doc-x", "doc-y"]


##########################################
############### MEMORY ###################
##########################################

def test_cosine_similarity():
    assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([1.0, 1.0], [-1.0, -1.0]) == pytest.approx(-1.0)


def test_cosine_similarity_degenerate_vectors():
    assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0
    assert cosine_similarity([1.0, 2.0], [1.0]) == 0.0


@pytest.mark.asyncio
async def test_memory_ties_keep_insertion_order(memory):
    await memory.do_upsert([make_record(str(i), [1.0, 1.0]) for i in range(5)])
    result = await memory.do_query([2.0, 2.0], top_k=5)
    assert [m.id for m in result.matches] == [f"doc-{i}" for i in range(5)]


@pytest.mark.asyncio
async def test_memory_collection_index_stays_consistent(memory):
    await memory.do_upsert([make_record("1", [1.0], "A"), make_record("2", [1.0], "A"), make_record("3", [1.0], "B")])
    # re-indexing under another collection moves the record
    await memory.do_upsert([make_record("2", [1.0], "B")])
    deleted = await memory.do_delete(["doc-1", "doc-missing"])

    assert deleted.deleted_count == 1
    assert memory.get_collection_record_ids("A") == []
    assert memory.get_collection_record_ids("B") == ["doc-3", "doc-2"]
    assert memory.count() == 2


@pytest.mark.asyncio
async def test_memory_upsert_overwrites_same_id(memory):
    await memory.do_upsert([make_record("1", [1.0, 0.0])])
    await memory.do_upsert([make_record("1", [0.0, 1.0])])
    result = await memory.do_query([0.0, 1.0], top_k=1)
    assert memory.count() == 1
    assert result.matches[0].score == pytest.approx(1.0)
