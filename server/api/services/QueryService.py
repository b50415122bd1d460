"""Query service: semantic search over the indexed documents of one collection."""

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface, EmbedPurpose
from shared.clients.rag.VectorStore import VectorStore
from shared.clients.rag.models.QueryResult import QueryMatch
from shared.helper.HelperConfig import HelperConfig
from shared.models.search import SearchRequest, SearchResponse, SearchResultItem


class QueryService:
    """Orchestrates embedding, vector retrieval, and result assembly for document search."""

    def __init__(
        self,
        helper_config: HelperConfig,
        vector_store: VectorStore,
        embed_client: EmbedClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._vector_store = vector_store
        self._embed = embed_client

    ##########################################
    ################ CORE ####################
    ##########################################

    async def do_query(self, request: SearchRequest) -> SearchResponse:
        """Execute a natural language query against a collection.

        Embeds the query text and searches the vector store with a mandatory
        collection filter. Embedding failures are not retried.

        Args:
            request (SearchRequest): The incoming query with text, collection_id, and limit.

        Returns:
            SearchResponse: Ranked list of matching documents.

        Raises:
            EmbeddingServiceError: If the query cannot be embedded.
            VectorBackendError: If no vector backend could answer.
        """
        self.logging.info(
            "Executing query: collection_id=%s query=%r limit=%d",
            request.collection_id,
            request.query[:80],
            request.limit,
        )

        vector = await self._embed.do_embed_text(request.query, purpose=EmbedPurpose.QUERY)
        result = await self._vector_store.query(vector, top_k=request.limit, collection_id=request.collection_id)
        items = self._build_result_items(result.matches)

        self.logging.info(
            "Query complete: collection_id=%s results=%d engine=%s",
            request.collection_id,
            len(items),
            result.engine,
        )
        return SearchResponse(query=request.query, results=items, total=len(items), engine=result.engine)

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _build_result_items(self, matches: list[QueryMatch]) -> list[SearchResultItem]:
        return [
            SearchResultItem(
                document_id=match.metadata.document_id,
                document_name=match.metadata.document_name,
                score=match.score,
            )
            for match in matches
        ]
