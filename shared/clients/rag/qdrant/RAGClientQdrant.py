import json
import uuid

from shared.helper.HelperConfig import HelperConfig
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.EmbeddingRecord import EmbeddingMetadata, EmbeddingRecord
from shared.clients.rag.models.QueryResult import DeleteResult, QueryMatch, QueryResult, UpsertResult
from shared.models.config import EnvConfig


def _make_point_id(record_id: str) -> str:
    """Build a deterministic UUID5 point ID for a record id.

    Qdrant only accepts unsigned integers or UUIDs as point IDs. UUID5 keeps the
    mapping stable so re-indexing overwrites rather than duplicates.
    """
    return str(uuid.uuid5(uuid.NAMESPACE_OID, record_id))


class RAGClientQdrant(RAGClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._collection_name = self.get_config_val("COLLECTION", default=None, val_type="string")
        self._native_filter = self.get_config_val("NATIVE_FILTER", default=True, val_type="bool")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Qdrant"

    def supports_collection_filter(self) -> bool:
        return self._native_filter

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="COLLECTION", val_type="string", default=None),
            EnvConfig(env_key="NATIVE_FILTER", val_type="bool", default=True),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"api-key": f"{self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint_points(self) -> str:
        return f"/collections/{self._collection_name}/points"

    def _get_endpoint_delete_points(self) -> str:
        return f"/collections/{self._collection_name}/points/delete"

    def _get_endpoint_search(self) -> str:
        return f"/collections/{self._collection_name}/points/search"

    def _get_endpoint_check_collection_existence(self) -> str:
        return f"/collections/{self._collection_name}/exists"

    def _get_endpoint_create_collection(self) -> str:
        return f"/collections/{self._collection_name}"

    def _get_endpoint_payload_index(self) -> str:
        return f"/collections/{self._collection_name}/index"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_point(self, record: EmbeddingRecord) -> dict:
        payload = record.metadata.model_dump()
        payload["record_id"] = record.id
        return {"id": _make_point_id(record.id), "vector": record.vector, "payload": payload}

    def get_search_payload(self, vector: list[float], top_k: int, collection_id: str | None) -> dict:
        payload: dict = {"vector": vector, "limit": top_k, "with_payload": True}
        if collection_id is not None:
            payload["filter"] = {"must": [{"key": "collection_id", "match": {"value": str(collection_id)}}]}
        return payload

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_matches(self, raw_response: dict) -> list[QueryMatch]:
        matches: list[QueryMatch] = []
        for hit in raw_response.get("result") or []:
            payload = hit.get("payload") or {}
            matches.append(
                QueryMatch(
                    id=payload.get("record_id") or str(hit.get("id")),
                    score=hit.get("score", 0.0),
                    metadata=EmbeddingMetadata(
                        collection_id=payload.get("collection_id"),
                        document_id=payload.get("document_id"),
                        document_name=payload.get("document_name", ""),
                    ),
                )
            )
        return matches

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_existence_check(self) -> bool:
        """Check if the configured collection exists in Qdrant."""
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_check_collection_existence(), raise_on_error=True)
        return bool(resp.json().get("result", {}).get("exists"))

    async def do_ensure_collection(self, vector_size: int, distance: str = "Cosine") -> None:
        if await self.do_existence_check():
            self.logging.info("Qdrant collection %r already exists.", self._collection_name)
            return
        await self.do_request(
            method="PUT",
            json={"vectors": {"size": vector_size, "distance": distance}},
            endpoint=self._get_endpoint_create_collection(),
            raise_on_error=True,
        )
        # keyword index keeps collection-filtered searches fast
        await self.do_request(
            method="PUT",
            json={"field_name": "collection_id", "field_schema": "keyword"},
            endpoint=self._get_endpoint_payload_index(),
            raise_on_error=True,
        )
        self.logging.info("Created Qdrant collection %r (size=%d, distance=%s).", self._collection_name, vector_size, distance)

    async def do_upsert(self, records: list[EmbeddingRecord]) -> UpsertResult:
        await self.do_request(
            method="PUT",
            content=json.dumps({"points": [self.get_point(record) for record in records]}),
            endpoint=self._get_endpoint_points(),
            params={"wait": "true"},
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True,
        )
        return UpsertResult(upserted_count=len(records), engine=self.get_engine_name())

    async def do_delete(self, ids: list[str]) -> DeleteResult:
        """Delete records by id and report how many of them existed.

        The delete call itself does not say which points were present, so they are
        retrieved first; ids that were never stored do not count as deleted.
        """
        point_ids = [_make_point_id(record_id) for record_id in ids]
        existing = await self.do_request(
            method="POST",
            json={"ids": point_ids, "with_payload": False, "with_vector": False},
            endpoint=self._get_endpoint_points(),
            raise_on_error=True,
        )
        present = len(existing.json().get("result") or [])
        if present == 0:
            return DeleteResult(deleted_count=0, engine=self.get_engine_name())
        await self.do_request(
            method="POST",
            content=json.dumps({"points": point_ids}),
            endpoint=self._get_endpoint_delete_points(),
            params={"wait": "true"},
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True,
        )
        return DeleteResult(deleted_count=present, engine=self.get_engine_name())

    async def do_query(self, vector: list[float], top_k: int, collection_id: str | None = None) -> QueryResult:
        resp = await self.do_request(
            method="POST",
            content=json.dumps(self.get_search_payload(vector, top_k, collection_id)),
            endpoint=self._get_endpoint_search(),
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True,
        )
        return QueryResult(matches=self.extract_matches(resp.json()), engine=self.get_engine_name())
