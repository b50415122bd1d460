from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class LLMClientGemini(LLMClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://generativelanguage.googleapis.com", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")

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
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"x-goog-api-key": self._api_key}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return f"/v1beta/models/{self.chat_model}"

    def _get_endpoint_chat(self) -> str:
        return f"/v1beta/models/{self.chat_model}:generateContent"

    ################ PAYLOAD BUILDER ##################
    def get_chat_payload(self, messages: list[dict], json_output: bool = False) -> dict:
        """Build a generateContent body.

        System messages are merged into systemInstruction; assistant turns map to the "model" role.
        """
        system_parts = [{"text": m["content"]} for m in messages if m.get("role") == "system"]
        contents = [
            {
                "role": "model" if m.get("role") == "assistant" else "user",
                "parts": [{"text": m["content"]}],
            }
            for m in messages
            if m.get("role") != "system"
        ]
        generation_config: dict = {"temperature": self.temperature}
        if json_output:
            generation_config["responseMimeType"] = "application/json"

        payload: dict = {"contents": contents, "generationConfig": generation_config}
        if system_parts:
            payload["systemInstruction"] = {"parts": system_parts}
        return payload

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_chat_response(self, response_data: dict) -> str:
        candidates = response_data.get("candidates") or []
        if not candidates:
            raise ValueError(
                "Gemini response contains no candidates. "
                "Response keys: %s" % list(response_data.keys())
            )
        parts = (candidates[0].get("content") or {}).get("parts") or []
        texts = [part.get("text") for part in parts if part.get("text") is not None]
        if not texts:
            raise ValueError("Gemini candidate does not contain any text parts.")
        return "".join(texts)
