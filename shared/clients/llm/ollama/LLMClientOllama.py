from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class LLMClientOllama(LLMClientInterface):
    """Local generation through Ollama's /api/chat, non-streaming.

    LLM_OLLAMA_NUM_CTX widens the context window; Ollama's default truncates long
    documents silently, which shows up as anchors the model cannot see.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._num_ctx = int(self.get_config_val("NUM_CTX", default=0, val_type="number"))

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
            EnvConfig(env_key="NUM_CTX", val_type="number", default=0),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        # only set behind an authenticating proxy
        return {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/api/version"

    def _get_endpoint_chat(self) -> str:
        return "/api/chat"

    ################ PAYLOAD BUILDER ##################
    def get_chat_payload(self, messages: list[dict], json_output: bool = False) -> dict:
        options: dict = {"temperature": self.temperature}
        if self._num_ctx > 0:
            options["num_ctx"] = self._num_ctx
        payload = {"model": self.chat_model, "messages": messages, "stream": False, "options": options}
        if json_output:
            payload["format"] = "json"
        return payload

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_chat_response(self, response_data: dict) -> str:
        content = (response_data.get("message") or {}).get("content")
        if not isinstance(content, str):
            raise ValueError(f"Ollama chat response has no message content. Keys: {sorted(response_data)}")
        return content
