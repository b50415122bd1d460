from typing import Any

from shared.helper.HelperConfig import HelperConfig


def normalize_engine(engine: str) -> str:
    """ " qDrant " -> "Qdrant", the spelling used in module and class names."""
    return engine.strip().lower().capitalize()


def load_client(client_type: str, engine: str, helper_config: HelperConfig) -> Any:
    """Import shared.clients.<type>.<engine>.<Type>Client<Engine> and instantiate it.

    Args:
        client_type (str): Client family prefix as used in class names, e.g. "RAG" or "Embed".
        engine (str): Engine name in any case, e.g. "qdrant".
        helper_config (HelperConfig): Passed to the client constructor.

    Raises:
        ValueError: If no client exists for the engine.
    """
    engine = normalize_engine(engine)
    class_name = f"{client_type}Client{engine}"
    try:
        module = __import__(f"shared.clients.{client_type.lower()}.{engine.lower()}.{class_name}", fromlist=[class_name])
        client_class = getattr(module, class_name)
    except (ImportError, AttributeError) as e:
        raise ValueError(f"Unsupported {client_type} engine '{engine}': {e}")
    helper_config.get_logger().debug("Instantiated %s client for engine: %s", client_type, engine)
    return client_class(helper_config=helper_config)
