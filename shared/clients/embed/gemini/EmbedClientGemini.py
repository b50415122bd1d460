
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface, EmbedPurpose
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

_TASK_TYPES = {
    EmbedPurpose.DOCUMENT: "RETRIEVAL_DOCUMENT",
    EmbedPurpose.QUERY: "RETRIEVAL_QUERY",
}


class EmbedClientGemini(EmbedClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://generativelanguage.googleapis.com", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")
        self._vector_size = int(self.get_config_val("VECTOR_SIZE", default=768, val_type="number"))

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Gemini"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://generativelanguage.googleapis.com"),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
            EnvConfig(env_key="VECTOR_SIZE", val_type="number", default=768),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"x-goog-api-key": self._api_key}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return f"/v1beta/models/{self.embed_model}"

    def get_endpoint_embedding(self) -> str:
        return f"/v1beta/models/{self.embed_model}:batchEmbedContents"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str], purpose: EmbedPurpose) -> dict:
        """Build a batchEmbedContents body with one request per text, tagged with the retrieval task type."""
        return {
            "requests": [
                {
                    "model": f"models/{self.embed_model}",
                    "content": {"parts": [{"text": text}]},
                    "taskType": _TASK_TYPES[purpose],
                }
                for text in texts
            ]
        }

    ##########################################
    ################# OTHER ##################
    ##########################################

    async def do_fetch_embedding_vector_size(self) -> tuple[int, str]:
        # the API does not report dimensions, the model's size is configured
        return self._vector_size, self.embed_distance

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract vectors from {"embeddings": [{"values": [...]}, ...]}."""
        embeddings = response_data.get("embeddings")
        if not embeddings:
            raise ValueError(
                "Gemini response does not contain embeddings. "
                f"Response keys: {list(response_data.keys())}"
            )
        vectors: list[list[float]] = []
        for embedding in embeddings:
            values = (embedding or {}).get("values")
            if not values:
                raise ValueError("Gemini response contains an embedding without values.")
            vectors.append(values)
        return vectors
