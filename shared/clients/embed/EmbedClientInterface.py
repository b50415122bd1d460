from abc import abstractmethod
from enum import Enum
from shared.clients.ClientInterface import ClientInterface
from shared.errors import EmbeddingServiceError, ServiceError
from shared.helper.HelperConfig import HelperConfig


class EmbedPurpose(str, Enum):
    """What an embedding is used for. Some engines produce different vectors per purpose."""

    DOCUMENT = "document"
    QUERY = "query"


class EmbedClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        self.embed_distance = helper_config.get_string_val(f"{self.get_client_type().upper()}_DISTANCE", default="Cosine")
        self.embed_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_MODEL")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "embed"

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str], purpose: EmbedPurpose) -> dict:
        """Build the backend-specific request body for an embedding request.

        Args:
            texts (list[str]): The texts to embed.
            purpose (EmbedPurpose): Whether the texts are stored documents or search queries.

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    async def do_fetch_embedding_vector_size(self) -> tuple[int, str]:
        """Vector dimension of the configured model and the distance metric the store should use.

        The vector store collection is created with this size, so both indexing and
        querying must run against the same model.
        """
        pass

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Vectors from a parsed response, in input order.

        Raises:
            ValueError: If the response holds no usable vectors.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_embed(self, texts: list[str] | str, purpose: EmbedPurpose = EmbedPurpose.DOCUMENT) -> list[list[float]]:
        """Send an embedding request and return the extracted vectors.

        There is no retry here: indexing callers retry, interactive callers fail fast.

        Args:
            texts (list[str] | str): One or more texts to embed.
            purpose (EmbedPurpose): Whether the texts are stored documents or search queries.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the inputs.

        Raises:
            EmbeddingServiceError: On network failure, non-2xx status, or a response without vectors.
        """
        texts = [texts] if isinstance(texts, str) else texts
        body = self.get_embed_payload(texts, EmbedPurpose(purpose))
        try:
            response = await self.do_request(method="POST", endpoint=self.get_endpoint_embedding(), json=body)
        except ServiceError as exc:
            raise EmbeddingServiceError(f"Embedding request failed: {exc}", status_code=exc.status_code) from exc

        if response.status_code != 200:
            self.logging.error(
                "Embedding request failed: status %d, body: %s",
                response.status_code,
                response.text[:200],
            )
            raise EmbeddingServiceError(
                "Embedding request failed with status %d." % response.status_code,
                status_code=response.status_code,
            )
        try:
            embeddings = self.extract_embeddings_from_response(response.json())
        except ValueError as exc:
            raise EmbeddingServiceError(str(exc), status_code=response.status_code) from exc
        if len(embeddings) != len(texts):
            raise EmbeddingServiceError(
                "Embedding response contains %d vectors for %d texts." % (len(embeddings), len(texts))
            )
        return embeddings

    async def do_embed_text(self, text: str, purpose: EmbedPurpose = EmbedPurpose.DOCUMENT) -> list[float]:
        """Embed a single text and return its vector."""
        vectors = await self.do_embed([text], purpose=purpose)
        return vectors[0]
