import math

import httpx

from shared.helper.HelperConfig import HelperConfig
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.EmbeddingRecord import EmbeddingRecord
from shared.clients.rag.models.QueryResult import DeleteResult, QueryMatch, QueryResult, UpsertResult
from shared.models.config import EnvConfig


def cosine_similarity(vec_a: list[float], vec_b: list[float]) -> float:
    """Cosine similarity dot(a,b) / (|a| * |b|).

    Returns 0.0 when either vector has zero magnitude or the dimensions differ.
    """
    if len(vec_a) != len(vec_b):
        return 0.0
    dot_product = sum(a * b for a, b in zip(vec_a, vec_b))
    magnitude_a = math.sqrt(sum(a * a for a in vec_a))
    magnitude_b = math.sqrt(sum(b * b for b in vec_b))
    if magnitude_a == 0 or magnitude_b == 0:
        return 0.0
    return dot_product / (magnitude_a * magnitude_b)


class RAGClientMemory(RAGClientInterface):
    """In-process vector backend computing cosine similarity by brute force.

    Records live in insertion order. A collection index maps each collection id
    to the ids of its records so scoped queries only score that collection.
    Nothing is persisted; the index is rebuildable from the document store.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._records: dict[str, EmbeddingRecord] = {}
        # collection id -> ordered set of record ids (dict keys keep insertion order)
        self._collection_index: dict[str, dict[str, None]] = {}

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Memory"

    def supports_collection_filter(self) -> bool:
        return True

    def count(self) -> int:
        return len(self._records)

    def get_collection_record_ids(self, collection_id: str) -> list[str]:
        """Return the record ids indexed under a collection, in insertion order."""
        return list(self._collection_index.get(str(collection_id), {}))

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return []

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return "memory://"

    def _get_endpoint_healthcheck(self) -> str:
        return ""

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def boot(self) -> None:
        return None

    async def close(self) -> None:
        return None

    async def do_healthcheck(self) -> httpx.Response:
        return httpx.Response(200, json={"engine": self.get_engine_name(), "records": self.count()})

    ##########################################
    ############### REQUESTS #################
    ##########################################

    def _unindex(self, record_id: str) -> None:
        record = self._records.get(record_id)
        if record is None:
            return
        collection_id = record.metadata.collection_id
        members = self._collection_index.get(collection_id)
        if members is not None:
            members.pop(record_id, None)
            if not members:
                del self._collection_index[collection_id]

    async def do_upsert(self, records: list[EmbeddingRecord]) -> UpsertResult:
        for record in records:
            existing = self._records.get(record.id)
            if existing is not None and existing.metadata.collection_id != record.metadata.collection_id:
                self._unindex(record.id)
            self._records[record.id] = record
            self._collection_index.setdefault(record.metadata.collection_id, {})[record.id] = None
        self.logging.debug("Memory backend upserted %d record(s), store size %d.", len(records), self.count())
        return UpsertResult(upserted_count=len(records), engine=self.get_engine_name())

    async def do_delete(self, ids: list[str]) -> DeleteResult:
        deleted = 0
        for record_id in ids:
            if record_id not in self._records:
                continue
            self._unindex(record_id)
            del self._records[record_id]
            deleted += 1
        self.logging.debug("Memory backend deleted %d record(s), store size %d.", deleted, self.count())
        return DeleteResult(deleted_count=deleted, engine=self.get_engine_name())

    async def do_query(self, vector: list[float], top_k: int, collection_id: str | None = None) -> QueryResult:
        if collection_id is not None:
            candidates = [self._records[record_id] for record_id in self._collection_index.get(str(collection_id), {})]
        else:
            candidates = list(self._records.values())

        scored = [(cosine_similarity(vector, record.vector), record) for record in candidates]
        # stable sort: equal scores keep insertion order
        scored.sort(key=lambda item: item[0], reverse=True)

        matches = [
            QueryMatch(id=record.id, score=score, metadata=record.metadata)
            for score, record in scored[:max(top_k, 0)]
        ]
        return QueryResult(matches=matches, engine=self.get_engine_name())
