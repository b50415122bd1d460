"""Index router: on-demand (re-)indexing of documents and collections."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from shared.dependencies.auth import verify_api_key
from shared.models.indexing import IndexResult

index_router = APIRouter(prefix="/index", dependencies=[Depends(verify_api_key)], tags=["Index"])


def _to_response(result: IndexResult) -> JSONResponse:
    return JSONResponse(status_code=200 if result.success else 502, content=result.model_dump(mode="json", by_alias=True))


@index_router.post("/collections/{collection_id}")
async def handle_index_collection(request: Request, collection_id: str) -> JSONResponse:
    """Embed every document of a collection. Runs to completion before answering."""
    result = await request.app.state.indexing_service.index_collection(collection_id)
    return _to_response(result)


@index_router.post("/documents/{document_id}")
async def handle_index_document(request: Request, document_id: str) -> JSONResponse:
    result = await request.app.state.indexing_service.index_document(document_id)
    return _to_response(result)


@index_router.delete("/documents/{document_id}")
async def handle_remove_document(request: Request, document_id: str) -> JSONResponse:
    result = await request.app.state.indexing_service.remove_from_index(document_id)
    return _to_response(result)
