from shared.clients.embed.EmbedClientInterface import EmbedClientInterface, EmbedPurpose
from shared.errors import EmbeddingServiceError, ServiceError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class EmbedClientOllama(EmbedClientInterface):
    """Embeddings from a local Ollama server via /api/embed (batch input)."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Ollama"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/api/version"

    def get_endpoint_embedding(self) -> str:
        return "/api/embed"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str], purpose: EmbedPurpose) -> dict:
        # Ollama has no task types; documents and queries share one payload
        return {"model": self.embed_model, "input": texts}

    ##########################################
    ################# OTHER ##################
    ##########################################

    async def do_fetch_embedding_vector_size(self) -> tuple[int, str]:
        """Read "<arch>.embedding_length" from /api/show for the configured model."""
        try:
            response = await self.do_request(
                method="POST", endpoint="/api/show", json={"model": self.embed_model}, raise_on_error=True,
            )
        except ServiceError as exc:
            raise EmbeddingServiceError(f"Model details request failed: {exc}", status_code=exc.status_code) from exc
        model_info: dict = response.json().get("model_info") or {}
        size = next((value for key, value in model_info.items() if key.endswith(".embedding_length")), None)
        if size is None:
            raise EmbeddingServiceError(f"Ollama reports no embedding length for model '{self.embed_model}'.")
        return int(size), self.embed_distance

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        embeddings = response_data.get("embeddings")
        if not embeddings or any(not vector for vector in embeddings):
            raise ValueError(f"Ollama embed response has no usable vectors. Keys: {sorted(response_data)}")
        return embeddings
