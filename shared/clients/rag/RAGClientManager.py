from shared.clients.client_loader import load_client, normalize_engine
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.VectorStore import VectorStore
from shared.clients.rag.memory.RAGClientMemory import RAGClientMemory
from shared.helper.HelperConfig import HelperConfig


class RAGClientManager:
    """
    Builds the ordered chain of vector backends from configuration.

    RAG_ENGINES lists the primary backends in priority order (e.g. "[qdrant]").
    The in-memory backend is always appended as the last resort, so an empty
    list yields a memory-only store.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        engines = [normalize_engine(e) for e in helper_config.get_list_val("RAG_ENGINES", default=[])]
        self.clients: list[RAGClientInterface] = [
            load_client("RAG", engine, helper_config) for engine in engines if engine != "Memory"
        ]
        self.clients.append(RAGClientMemory(helper_config=helper_config))

    def get_clients(self) -> list[RAGClientInterface]:
        return self.clients

    def build_vector_store(self, backends: list[RAGClientInterface] | None = None) -> VectorStore:
        """Chain the given backends, all configured clients by default, in order."""
        return VectorStore(helper_config=self.helper_config, backends=backends if backends is not None else self.clients)
