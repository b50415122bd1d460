from shared.clients.client_loader import load_client
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig


class LLMClientManager:
    """Holds the generation client selected by LLM_ENGINE (e.g. "gemini")."""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.client: LLMClientInterface = load_client("LLM", helper_config.get_string_val("LLM_ENGINE"), helper_config)

    def get_client(self) -> LLMClientInterface:
        return self.client
