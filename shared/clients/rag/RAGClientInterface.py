from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.clients.rag.models.EmbeddingRecord import EmbeddingRecord
from shared.clients.rag.models.QueryResult import DeleteResult, QueryResult, UpsertResult
from shared.helper.HelperConfig import HelperConfig


class RAGClientInterface(ClientInterface):
    """Contract of a vector backend usable inside the VectorStore fallback chain.

    Backends raise on failure; the chain decides whether to fall back.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "rag"

    def supports_collection_filter(self) -> bool:
        """
        Whether do_query() can restrict results to a collection server-side.

        Backends returning False receive collection_id=None and the VectorStore
        over-fetches and filters client-side.
        """
        return False

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_ensure_collection(self, vector_size: int, distance: str = "Cosine") -> None:
        """Create whatever server-side structure the backend needs before the first upsert.

        Args:
            vector_size (int): Dimension of the embedding vectors.
            distance (str): Distance metric name.
        """
        return None

    @abstractmethod
    async def do_upsert(self, records: list[EmbeddingRecord]) -> UpsertResult:
        """Insert records, replacing any existing record with the same id.

        Args:
            records (list[EmbeddingRecord]): The records to write.

        Returns:
            UpsertResult: Number of records written.
        """
        pass

    @abstractmethod
    async def do_delete(self, ids: list[str]) -> DeleteResult:
        """Delete records by id. Unknown ids are ignored.

        Args:
            ids (list[str]): Record ids to delete.

        Returns:
            DeleteResult: Number of records removed, as far as the backend can tell.
        """
        pass

    @abstractmethod
    async def do_query(self, vector: list[float], top_k: int, collection_id: str | None = None) -> QueryResult:
        """Return the top_k records most similar to the vector.

        Args:
            vector (list[float]): Query vector.
            top_k (int): Maximum number of matches.
            collection_id (str | None): Restrict to one collection. Only passed to
                backends whose supports_collection_filter() is True.

        Returns:
            QueryResult: Matches ordered by descending similarity.
        """
        pass
