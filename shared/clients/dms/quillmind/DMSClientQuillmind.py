from shared.clients.dms.DMSClientInterface import DMSClientInterface
from shared.clients.dms.models.Document import DocumentDetails
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class DMSClientQuillmind(DMSClientInterface):
    """Client for the QuillMind project/file REST API.

    Projects are collections; entries of type "file" are documents. Folders are skipped.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Quillmind"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/api/projects"

    def _get_endpoint_document_details(self, document_id: str) -> str:
        return f"/api/files/{document_id}"

    def _get_endpoint_collection_documents(self, collection_id: str) -> str:
        return f"/api/projects/{collection_id}/files"

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def _parse_endpoint_document(self, response: dict) -> DocumentDetails | None:
        if response.get("type", "file") != "file":
            return None
        return self._to_document(response, collection_id=response.get("project_id"))

    def _parse_endpoint_collection_documents(self, response: dict | list, collection_id: str) -> list[DocumentDetails]:
        """Flatten the nested folder/file tree depth-first, keeping files only."""
        documents: list[DocumentDetails] = []
        stack = list(reversed(response if isinstance(response, list) else [response]))
        while stack:
            node = stack.pop()
            if node.get("type", "file") == "file":
                documents.append(self._to_document(node, collection_id=node.get("project_id") or collection_id))
            stack.extend(reversed(node.get("children") or []))
        return documents

    def _to_document(self, raw: dict, collection_id) -> DocumentDetails:
        return DocumentDetails(
            engine=self.get_engine_name(),
            id=raw.get("file_id", raw.get("id")),
            name=raw.get("name") or "",
            collection_id=collection_id,
            content=raw.get("content"),
            parent_id=str(raw["parent_id"]) if raw.get("parent_id") is not None else None,
            updated_at=raw.get("updated_at"),
        )
