"""Indexing runner entry point.

Re-embeds every document of the collections listed in INDEX_COLLECTION_IDS and
writes them to the vector store. The webhook handler covers single document
updates; run this for the initial index or after changing the embedding model.

Usage:
    python -m services.rag_indexing.rag_indexing
"""

import asyncio

from services.rag_indexing.IndexingService import IndexingService
from shared.clients.dms.DMSClientManager import DMSClientManager
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.helper.bootstrap import boot_client, boot_rag_backends
from shared.logging.logging_setup import setup_logging


async def main() -> int:
    """Index all configured collections. Returns the process exit code."""
    logger = setup_logging()
    config = HelperConfig(logger=logger)
    collection_ids = config.get_list_val("INDEX_COLLECTION_IDS", default=[])
    if not collection_ids:
        logger.error("INDEX_COLLECTION_IDS is empty, nothing to index.")
        return 1

    dms_client = DMSClientManager(helper_config=config).get_client()
    embed_client = EmbedClientManager(helper_config=config).get_client()
    rag_manager = RAGClientManager(helper_config=config)
    rag_clients = rag_manager.get_clients()

    try:
        # the embed client and the document store are required, there is no point in indexing without them
        try:
            await boot_client(embed_client, config)
            await boot_client(dms_client, config)
        except Exception as e:
            logger.error("Error booting required clients: %s. Aborting.", e)
            return 1

        backends = await boot_rag_backends(config, rag_clients, embed_client)
        indexing_service = IndexingService(
            helper_config=config,
            dms_client=dms_client,
            vector_store=rag_manager.build_vector_store(backends),
            embed_client=embed_client,
        )

        exit_code = 0
        for collection_id in collection_ids:
            result = await indexing_service.index_collection(collection_id)
            logger.info("Collection %s: %s (%s)", collection_id, result.status.value, result.message)
            if not result.success:
                exit_code = 1
        return exit_code
    finally:
        await embed_client.close()
        await dms_client.close()
        for rag_client in rag_clients:
            await rag_client.close()


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
