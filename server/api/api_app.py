"""FastAPI application entry point for the edit bridge API."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from server.api.routers.EditRouter import edit_router
from server.api.routers.IndexRouter import index_router
from server.api.routers.QueryRouter import query_router
from server.api.routers.WebhookRouter import webhook_router
from server.api.services.DiffGeneratorService import DiffGeneratorService
from server.api.services.EditService import EditService
from server.api.services.FileDiscoveryService import FileDiscoveryService
from server.api.services.QueryService import QueryService
from services.rag_indexing.IndexingService import IndexingService
from shared.clients.dms.DMSClientManager import DMSClientManager
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.helper.bootstrap import boot_client, boot_rag_backends
from shared.logging.logging_setup import setup_logging

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


def wire_services(app: FastAPI, dms_client, embed_client, llm_client, vector_store) -> None:
    """Attach the indexing, query and edit services to app.state, all sharing one vector store."""
    config = app.state.config
    app.state.indexing_service = IndexingService(
        helper_config=config, dms_client=dms_client, vector_store=vector_store, embed_client=embed_client,
    )
    app.state.query_service = QueryService(helper_config=config, vector_store=vector_store, embed_client=embed_client)
    discovery = FileDiscoveryService(
        helper_config=config, dms_client=dms_client, vector_store=vector_store, embed_client=embed_client,
    )
    generator = DiffGeneratorService(helper_config=config, llm_client=llm_client)
    app.state.edit_service = EditService(helper_config=config, discovery_service=discovery, generator_service=generator)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown."""
    app.state.logging = setup_logging()
    app.state.config = HelperConfig(logger=app.state.logging)

    # Initialise clients
    dms_client = DMSClientManager(helper_config=app.state.config).get_client()
    embed_client = EmbedClientManager(helper_config=app.state.config).get_client()
    llm_client = LLMClientManager(helper_config=app.state.config).get_client()
    rag_manager = RAGClientManager(helper_config=app.state.config)
    rag_clients = rag_manager.get_clients()

    # Health checks, the API does not start without its document store and models
    await boot_client(dms_client, app.state.config)
    await boot_client(embed_client, app.state.config)
    await boot_client(llm_client, app.state.config)
    backends = await boot_rag_backends(app.state.config, rag_clients, embed_client)
    vector_store = rag_manager.build_vector_store(backends)
    app.state.logging.info(
        "Vector store chain: %s", " -> ".join(b.get_engine_name() for b in vector_store.get_backends())
    )

    wire_services(app, dms_client, embed_client, llm_client, vector_store)

    app.state.logging.info("Edit bridge API ready.")
    yield

    for client in (dms_client, embed_client, llm_client, *rag_clients):
        await client.close()
    app.state.logging.info("Edit bridge API shut down.")


app = FastAPI(
    title="Edit Bridge",
    description="Retrieval-augmented document editing: discovery, change generation and minimal suggestions.",
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("APP_CORS_ORIGINS", "*").split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(webhook_router)
app.include_router(query_router)
app.include_router(index_router)
app.include_router(edit_router)


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("APP_PORT", "8000"))
    logging.info("Starting edit bridge API v%s on port %d...", app_version, port)
    uvicorn.run(app, host=os.getenv("APP_HOST", "0.0.0.0"), port=port)
