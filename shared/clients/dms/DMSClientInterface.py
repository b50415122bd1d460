from abc import abstractmethod
from shared.helper.HelperConfig import HelperConfig
from shared.clients.ClientInterface import ClientInterface
from shared.clients.dms.models.Document import DocumentDetails
from shared.errors import ServiceError, TransientServiceError


class DMSClientInterface(ClientInterface):
    """Read-only client for the document store that owns collections and their documents."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "dms"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_document_details(self, document_id: str) -> str:
        """
        Returns the endpoint path for a single document (e.g. "/api/files/{id}").
        """
        pass

    @abstractmethod
    def _get_endpoint_collection_documents(self, collection_id: str) -> str:
        """
        Returns the endpoint path listing every document of a collection (e.g. "/api/projects/{id}/files").
        """
        pass

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @abstractmethod
    def _parse_endpoint_document(self, response: dict) -> DocumentDetails | None:
        """
        Parses a single-document response.

        Returns:
            DocumentDetails | None: The document, or None if the response describes
                something that is not an editable document (e.g. a folder).
        """
        pass

    @abstractmethod
    def _parse_endpoint_collection_documents(self, response: dict | list, collection_id: str) -> list[DocumentDetails]:
        """
        Parses a collection listing into its documents, in the order the store returned them.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_fetch_document(self, document_id: str) -> DocumentDetails | None:
        """Fetch a single document with its content.

        Args:
            document_id (str): The ID of the document.

        Returns:
            DocumentDetails | None: The document, or None if the store does not know it.

        Raises:
            ServiceError: On any other non-2xx answer.
            TransientServiceError: On network failures and 5xx answers.
        """
        response = await self.do_request(method="GET", endpoint=self._get_endpoint_document_details(str(document_id)))
        if response.status_code == 404:
            self.logging.info("Document id=%s not found in %s.", document_id, self.get_engine_name())
            return None
        if response.status_code >= 300:
            self.logging.error(
                "Fetching document id=%s failed with status %d: %s",
                document_id, response.status_code, response.text[:200],
            )
            error_class = TransientServiceError if response.status_code >= 500 else ServiceError
            raise error_class(
                f"Fetching document {document_id} failed with status {response.status_code}",
                status_code=response.status_code,
            )
        return self._parse_endpoint_document(response.json())

    async def do_fetch_documents(self, collection_id: str) -> list[DocumentDetails]:
        """Fetch all documents of a collection.

        Args:
            collection_id (str): The owning collection (project).

        Returns:
            list[DocumentDetails]: The collection's documents.
        """
        response = await self.do_request(
            method="GET",
            endpoint=self._get_endpoint_collection_documents(str(collection_id)),
            raise_on_error=True,
        )
        documents = self._parse_endpoint_collection_documents(response.json(), str(collection_id))
        self.logging.debug("Fetched %d documents of collection %s from %s.", len(documents), collection_id, self.get_engine_name())
        return documents
