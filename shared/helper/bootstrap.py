"""Client startup shared by the API server and the indexing runner."""

from shared.clients.ClientInterface import ClientInterface
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.helper.HelperConfig import HelperConfig


async def boot_client(client: ClientInterface, helper_config: HelperConfig) -> None:
    """Open the client's HTTP session and verify the service answers.

    Raises:
        ServiceError: If the healthcheck fails.
    """
    logger = helper_config.get_logger()
    await client.boot()
    await client.do_healthcheck()
    logger.info("%s client %s is ready.", client.get_client_type().upper(), client.get_engine_name())


async def boot_rag_backends(
    helper_config: HelperConfig,
    backends: list[RAGClientInterface],
    embed_client: EmbedClientInterface,
) -> list[RAGClientInterface]:
    """Boot every vector backend and make sure its collection exists.

    A backend that cannot be booted is left out of the chain. The in-memory
    backend at the end of the list always boots, so the result is never empty.

    Returns:
        list[RAGClientInterface]: The booted backends, in chain order.
    """
    logger = helper_config.get_logger()
    vector_size: int | None = None
    distance = "Cosine"
    try:
        vector_size, distance = await embed_client.do_fetch_embedding_vector_size()
    except Exception as e:
        logger.warning("Could not determine embedding vector size: %s. Collections are not created.", e)

    booted: list[RAGClientInterface] = []
    for backend in backends:
        try:
            await boot_client(backend, helper_config)
        except Exception as e:
            logger.error(
                "Error booting RAG client %s: %s. Leaving it out of the chain.",
                backend.get_engine_name(), e, color="red",
            )
            await backend.close()
            continue
        if vector_size is not None:
            try:
                await backend.do_ensure_collection(vector_size, distance)
            except Exception as e:
                logger.warning("Could not prepare collection on %s: %s", backend.get_engine_name(), e)
        booted.append(backend)
    return booted
