from shared.clients.client_loader import load_client
from shared.clients.dms.DMSClientInterface import DMSClientInterface
from shared.helper.HelperConfig import HelperConfig


class DMSClientManager:
    """Holds the document store client selected by DMS_ENGINE."""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.client: DMSClientInterface = load_client("DMS", helper_config.get_string_val("DMS_ENGINE"), helper_config)

    def get_client(self) -> DMSClientInterface:
        return self.client
