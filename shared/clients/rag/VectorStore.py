"""Vector store with circuit-breaking fallback across an ordered list of backends."""

from typing import Awaitable, Callable, TypeVar

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.BreakerState import BreakerState
from shared.clients.rag.models.EmbeddingRecord import EmbeddingRecord
from shared.clients.rag.models.QueryResult import DeleteResult, QueryResult, UpsertResult
from shared.errors import VectorBackendError
from shared.helper.HelperConfig import HelperConfig

T = TypeVar("T")

OVERFETCH_FACTOR = 3
OVERFETCH_MINIMUM = 10


class VectorStore:
    """Routes every operation to the first available backend of an ordered chain.

    Each backend has its own BreakerState. A failing call counts against the
    backend's breaker and the operation moves on to the next backend; a tripped
    breaker removes the backend from the chain for the lifetime of this store.
    The last backend (normally the in-memory one) is always attempted, even with
    an open breaker, so the chain never runs out of backends.

    Writes only go to the backend that serves them, so backends can diverge;
    the index is rebuildable from the document store.
    """

    def __init__(
        self,
        helper_config: HelperConfig,
        backends: list[RAGClientInterface],
        breakers: dict[str, BreakerState] | None = None,
    ) -> None:
        if not backends:
            raise ValueError("VectorStore needs at least one backend.")
        self.logging = helper_config.get_logger()
        self._backends = backends
        threshold = int(helper_config.get_number_val("RAG_BREAKER_THRESHOLD", default=3))
        self._breakers: dict[str, BreakerState] = dict(breakers or {})
        for backend in backends:
            self._breakers.setdefault(backend.get_engine_name(), BreakerState(threshold=threshold))

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_backends(self) -> list[RAGClientInterface]:
        return list(self._backends)

    def get_breaker(self, engine: str) -> BreakerState:
        return self._breakers[engine.lower()]

    ##########################################
    ################ CHAIN ###################
    ##########################################

    async def _run(self, operation: str, call: Callable[[RAGClientInterface], Awaitable[T]]) -> T:
        """Try each backend in order until one succeeds.

        Raises:
            VectorBackendError: If every attempted backend failed.
        """
        last_error: Exception | None = None
        last_index = len(self._backends) - 1
        for index, backend in enumerate(self._backends):
            engine = backend.get_engine_name()
            breaker = self._breakers[engine]
            if not breaker.available and index < last_index:
                self.logging.debug("Vector backend '%s' is disabled, skipping %s.", engine, operation)
                continue
            try:
                result = await call(backend)
            except Exception as exc:
                last_error = exc
                tripped = breaker.record_failure()
                self.logging.warning(
                    "Vector backend '%s' failed on %s (%d consecutive): %s",
                    engine, operation, breaker.consecutive_failures, exc,
                )
                if tripped:
                    self.logging.warning(
                        "Vector backend '%s' reached %d failures, disabled for this process.",
                        engine, breaker.threshold, color="yellow",
                    )
                continue
            breaker.record_success()
            if index > 0:
                self.logging.info("Served %s from fallback vector backend '%s'.", operation, engine)
            return result
        raise VectorBackendError(f"All vector backends failed on {operation}: {last_error}") from last_error

    ##########################################
    ############### OPERATIONS ###############
    ##########################################

    async def upsert(self, records: list[EmbeddingRecord]) -> UpsertResult:
        """Write records to the first healthy backend."""
        if not records:
            return UpsertResult(upserted_count=0)
        return await self._run("upsert", lambda backend: backend.do_upsert(records))

    async def delete(self, ids: list[str]) -> DeleteResult:
        """Delete records by id from the first healthy backend. Unknown ids are not an error."""
        if not ids:
            return DeleteResult(deleted_count=0)
        return await self._run("delete", lambda backend: backend.do_delete(ids))

    async def query(self, vector: list[float], top_k: int, collection_id: str | None = None) -> QueryResult:
        """Nearest-neighbour search, optionally scoped to one collection.

        Backends without server-side collection filtering are asked for
        max(top_k * 3, 10) matches which are then filtered by metadata here.
        Matches of other collections are removed for every backend.

        Args:
            vector (list[float]): Query vector.
            top_k (int): Maximum number of matches.
            collection_id (str | None): Collection to restrict the search to.

        Returns:
            QueryResult: At most top_k matches ordered by descending similarity.
        """
        if top_k < 1:
            raise ValueError("top_k must be at least 1.")
        scope = str(collection_id) if collection_id is not None else None

        async def _query(backend: RAGClientInterface) -> QueryResult:
            if scope is None:
                return await backend.do_query(vector, top_k)
            if backend.supports_collection_filter():
                result = await backend.do_query(vector, top_k, collection_id=scope)
            else:
                fetch_k = max(top_k * OVERFETCH_FACTOR, OVERFETCH_MINIMUM)
                result = await backend.do_query(vector, fetch_k)
            in_scope = [match for match in result.matches if match.metadata.collection_id == scope]
            if len(in_scope) < len(result.matches):
                self.logging.debug(
                    "Filtered %d of %d matches from '%s' to collection %s.",
                    len(in_scope), len(result.matches), backend.get_engine_name(), scope,
                )
            return QueryResult(matches=in_scope[:top_k], engine=result.engine)

        return await self._run("query", _query)
