import json

import httpx
import pytest

from shared.clients.dms.DMSClientManager import DMSClientManager
from shared.clients.dms.quillmind.DMSClientQuillmind import DMSClientQuillmind
from shared.clients.embed.EmbedClientInterface import EmbedPurpose
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.embed.gemini.EmbedClientGemini import EmbedClientGemini
from shared.clients.embed.ollama.EmbedClientOllama import EmbedClientOllama
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.llm.gemini.LLMClientGemini import LLMClientGemini
from shared.clients.llm.ollama.LLMClientOllama import LLMClientOllama
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.clients.rag.memory.RAGClientMemory import RAGClientMemory
from shared.clients.rag.qdrant.RAGClientQdrant import RAGClientQdrant
from shared.errors import EmbeddingServiceError, GenerationServiceError, ServiceError, TransientServiceError

from conftest import make_record


def _mount(client, handler):
    """Route the client's HTTP calls to handler instead of the network."""
    client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return client


##########################################
################ EMBED ###################
##########################################

@pytest.mark.asyncio
async def test_ollama_embed(helper_config):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"embeddings": [[0.1, 0.2, 0.3]]})

    client = _mount(EmbedClientOllama(helper_config=helper_config), handler)

    vector = await client.do_embed_text("hello", purpose=EmbedPurpose.QUERY)

    assert vector == [0.1, 0.2, 0.3]
    assert seen["url"] == "http://ollama.test/api/embed"
    assert seen["body"] == {"model": "nomic-embed-text", "input": ["hello"]}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="internal error"),
        httpx.Response(404, json={"error": "model not found"}),
        httpx.Response(200, json={"embeddings": []}),
        httpx.Response(200, json={"embeddings": [[0.1], [0.2]]}),
    ],
)
async def test_ollama_embed_failures(helper_config, response):
    client = _mount(EmbedClientOllama(helper_config=helper_config), lambda request: response)
    with pytest.raises(EmbeddingServiceError):
        await client.do_embed_text("hello")


@pytest.mark.asyncio
async def test_embed_network_failure_is_transient(helper_config):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = _mount(EmbedClientOllama(helper_config=helper_config), handler)
    with pytest.raises(EmbeddingServiceError) as exc_info:
        await client.do_embed_text("hello")
    assert isinstance(exc_info.value, TransientServiceError)


@pytest.mark.asyncio
async def test_ollama_vector_size(helper_config):
    def handler(request):
        return httpx.Response(200, json={"model_info": {"nomic-bert.embedding_length": 768}})

    client = _mount(EmbedClientOllama(helper_config=helper_config), handler)
    assert await client.do_fetch_embedding_vector_size() == (768, "Cosine")


@pytest.mark.asyncio
async def test_gemini_embed_uses_task_type(helper_config, env):
    env.setenv("EMBED_MODEL", "text-embedding-004")
    env.setenv("EMBED_GEMINI_API_KEY", "embed-key")
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["key"] = request.headers.get("x-goog-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"embeddings": [{"values": [0.5, 0.5]}]})

    client = _mount(EmbedClientGemini(helper_config=helper_config), handler)

    assert await client.do_embed_text("find intro", purpose=EmbedPurpose.QUERY) == [0.5, 0.5]
    assert seen["path"] == "/v1beta/models/text-embedding-004:batchEmbedContents"
    assert seen["key"] == "embed-key"
    assert seen["body"]["requests"][0]["taskType"] == "RETRIEVAL_QUERY"
    assert seen["body"]["requests"][0]["content"] == {"parts": [{"text": "find intro"}]}


def test_embed_manager_selects_engine(helper_config):
    assert isinstance(EmbedClientManager(helper_config=helper_config).get_client(), EmbedClientOllama)


def test_embed_manager_rejects_unknown_engine(helper_config, env):
    env.setenv("EMBED_ENGINE", "nonexistent")
    with pytest.raises(ValueError):
        EmbedClientManager(helper_config=helper_config)


##########################################
################# LLM ####################
##########################################

@pytest.mark.asyncio
async def test_gemini_chat(helper_config):
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={
            "candidates": [{"content": {"parts": [{"text": '{"changes": '}, {"text": "[]}"}]}}]
        })

    client = _mount(LLMClientGemini(helper_config=helper_config), handler)
    reply = await client.do_chat(
        [{"role": "system", "content": "rules"}, {"role": "user", "content": "document"}], json_output=True
    )

    assert reply == '{"changes": []}'
    assert seen["path"] == "/v1beta/models/gemini-1.5-pro:generateContent"
    assert seen["body"]["systemInstruction"] == {"parts": [{"text": "rules"}]}
    assert seen["body"]["contents"] == [{"role": "user", "parts": [{"text": "document"}]}]
    assert seen["body"]["generationConfig"] == {"temperature": 0.0, "responseMimeType": "application/json"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [httpx.Response(503, text="overloaded"), httpx.Response(200, json={"candidates": []})],
)
async def test_gemini_chat_failures(helper_config, response):
    client = _mount(LLMClientGemini(helper_config=helper_config), lambda request: response)
    with pytest.raises(GenerationServiceError):
        await client.do_chat([{"role": "user", "content": "hi"}])


@pytest.mark.asyncio
async def test_ollama_chat(helper_config, env):
    env.setenv("LLM_OLLAMA_BASE_URL", "http://ollama.test")
    env.setenv("LLM_CHAT_MODEL", "llama3")
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"message": {"role": "assistant", "content": "{}"}})

    client = _mount(LLMClientOllama(helper_config=helper_config), handler)

    assert await client.do_chat([{"role": "user", "content": "hi"}], json_output=True) == "{}"
    assert seen["body"]["format"] == "json"
    assert seen["body"]["stream"] is False
    assert seen["body"]["model"] == "llama3"


def test_llm_manager_selects_engine(helper_config):
    assert isinstance(LLMClientManager(helper_config=helper_config).get_client(), LLMClientGemini)


##########################################
################# DMS ####################
##########################################

PROJECT_TREE = [
    {"file_id": 1, "project_id": 7, "name": "README.md", "type": "file", "content": "# Readme", "children": []},
    {
        "file_id": 2, "project_id": 7, "name": "docs", "type": "folder",
        "children": [
            {"file_id": 3, "project_id": 7, "parent_id": 2, "name": "intro.md", "type": "file", "content": None},
            {
                "file_id": 4, "project_id": 7, "parent_id": 2, "name": "api", "type": "folder",
                "children": [{"file_id": 5, "project_id": 7, "parent_id": 4, "name": "ref.md", "type": "file", "content": "x"}],
            },
        ],
    },
    {"file_id": 6, "project_id": 7, "name": "z.md", "type": "file", "content": "z"},
]


@pytest.mark.asyncio
async def test_quillmind_flattens_tree_depth_first(helper_config):
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json=PROJECT_TREE)

    client = _mount(DMSClientQuillmind(helper_config=helper_config), handler)

    documents = await client.do_fetch_documents("7")

    assert seen == {"path": "/api/projects/7/files", "auth": "Bearer dms-token"}
    assert [doc.id for doc in documents] == ["1", "3", "5", "6"]
    assert all(doc.collection_id == "7" for doc in documents)
    assert documents[1].content == ""
    assert documents[1].parent_id == "2"


@pytest.mark.asyncio
async def test_quillmind_fetch_document(helper_config):
    def handler(request):
        if request.url.path == "/api/files/3":
            return httpx.Response(200, json={
                "file_id": 3, "project_id": 7, "parent_id": None, "name": "intro.md", "type": "file",
                "content": "Hello", "updated_at": "2024-05-01T10:00:00Z",
            })
        if request.url.path == "/api/files/2":
            return httpx.Response(200, json={"file_id": 2, "project_id": 7, "name": "docs", "type": "folder"})
        if request.url.path == "/api/files/500":
            return httpx.Response(502, text="bad gateway")
        if request.url.path == "/api/files/403":
            return httpx.Response(403, text="forbidden")
        return httpx.Response(404, json={"message": "not found"})

    client = _mount(DMSClientQuillmind(helper_config=helper_config), handler)

    document = await client.do_fetch_document("3")
    assert (document.id, document.name, document.collection_id, document.content) == ("3", "intro.md", "7", "Hello")
    assert await client.do_fetch_document("2") is None
    assert await client.do_fetch_document("404") is None
    with pytest.raises(TransientServiceError):
        await client.do_fetch_document("500")
    with pytest.raises(ServiceError) as exc_info:
        await client.do_fetch_document("403")
    assert not isinstance(exc_info.value, TransientServiceError)


def test_dms_manager_selects_engine(helper_config):
    assert isinstance(DMSClientManager(helper_config=helper_config).get_client(), DMSClientQuillmind)


##########################################
################# RAG ####################
##########################################

@pytest.mark.asyncio
async def test_qdrant_search_filters_by_collection(helper_config):
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"result": [
            {"id": "uuid-1", "score": 0.9, "payload": {
                "record_id": "doc-3", "collection_id": "7", "document_id": "3", "document_name": "intro.md",
            }},
        ]})

    client = _mount(RAGClientQdrant(helper_config=helper_config), handler)

    result = await client.do_query([0.1, 0.2], top_k=4, collection_id="7")

    assert seen["path"] == "/collections/documents/points/search"
    assert seen["body"]["limit"] == 4
    assert seen["body"]["filter"] == {"must": [{"key": "collection_id", "match": {"value": "7"}}]}
    assert result.engine == "qdrant"
    assert [(m.id, m.metadata.document_id) for m in result.matches] == [("doc-3", "3")]


@pytest.mark.asyncio
async def test_qdrant_upsert_uses_stable_point_ids(helper_config):
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"result": {"status": "completed"}})

    client = _mount(RAGClientQdrant(helper_config=helper_config), handler)
    await client.do_upsert([make_record("3", [0.1, 0.2])])
    await client.do_upsert([make_record("3", [0.3, 0.4])])

    first, second = bodies[0]["points"][0], bodies[1]["points"][0]
    assert first["id"] == second["id"]
    assert first["payload"]["record_id"] == "doc-3"
    assert first["payload"]["collection_id"] == "p1"


@pytest.mark.asyncio
async def test_qdrant_delete_counts_only_stored_points(helper_config):
    calls = []

    def handler(request):
        body = json.loads(request.content)
        calls.append((request.url.path, body))
        if request.url.path.endswith("/points"):
            # only the first requested point is stored
            return httpx.Response(200, json={"result": [{"id": body["ids"][0]}]})
        return httpx.Response(200, json={"result": {"status": "completed"}})

    client = _mount(RAGClientQdrant(helper_config=helper_config), handler)
    result = await client.do_delete(["doc-1", "doc-missing"])

    assert result.deleted_count == 1
    assert [path for path, _ in calls] == ["/collections/documents/points", "/collections/documents/points/delete"]
    assert calls[1][1]["points"] == calls[0][1]["ids"]


@pytest.mark.asyncio
async def test_qdrant_delete_of_unknown_ids_skips_the_delete_call(helper_config):
    paths = []

    def handler(request):
        paths.append(request.url.path)
        return httpx.Response(200, json={"result": []})

    client = _mount(RAGClientQdrant(helper_config=helper_config), handler)
    result = await client.do_delete(["doc-missing"])

    assert result.deleted_count == 0
    assert paths == ["/collections/documents/points"]


@pytest.mark.asyncio
async def test_qdrant_ensure_collection_creates_once(helper_config):
    calls = []
    state = {"exists": False}

    def handler(request):
        calls.append((request.method, request.url.path))
        if request.url.path.endswith("/exists"):
            return httpx.Response(200, json={"result": {"exists": state["exists"]}})
        return httpx.Response(200, json={"result": True})

    client = _mount(RAGClientQdrant(helper_config=helper_config), handler)
    await client.do_ensure_collection(768)
    state["exists"] = True
    await client.do_ensure_collection(768)

    assert calls == [
        ("GET", "/collections/documents/exists"),
        ("PUT", "/collections/documents"),
        ("PUT", "/collections/documents/index"),
        ("GET", "/collections/documents/exists"),
    ]


def test_rag_manager_appends_memory_backend(helper_config, env):
    env.setenv("RAG_ENGINES", "[qdrant, memory]")
    clients = RAGClientManager(helper_config=helper_config).get_clients()
    assert [type(c) for c in clients] == [RAGClientQdrant, RAGClientMemory]


def test_rag_manager_memory_only_by_default(helper_config):
    store = RAGClientManager(helper_config=helper_config).build_vector_store()
    assert [b.get_engine_name() for b in store.get_backends()] == ["memory"]
