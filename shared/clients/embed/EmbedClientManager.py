from shared.clients.client_loader import load_client
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig


class EmbedClientManager:
    """Holds the embedding client selected by EMBED_ENGINE.

    Indexing and querying must share this one client so that document and query
    vectors come from the same model.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.client: EmbedClientInterface = load_client("Embed", helper_config.get_string_val("EMBED_ENGINE"), helper_config)

    def get_client(self) -> EmbedClientInterface:
        return self.client
