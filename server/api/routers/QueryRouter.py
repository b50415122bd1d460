"""Query router: natural language search within one collection."""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from shared.dependencies.auth import verify_api_key
from shared.errors import TransientServiceError
from shared.models.search import SearchRequest

query_router = APIRouter()


@query_router.post(
    "/query",
    dependencies=[Depends(verify_api_key)],
    tags=["Query"],
)
async def handle_query(request: Request, body: SearchRequest) -> JSONResponse:
    """Handle a natural language document search request.

    Args:
        request (Request): The incoming FastAPI request (carries app state).
        body (SearchRequest): The parsed query with text and collection id.

    Returns:
        JSONResponse: Ranked list of matching documents.

    Raises:
        HTTPException: 503 if embedding or every vector backend is unavailable.
    """
    request.app.state.logging.info(
        "Query received: collection_id=%s query=%r", body.collection_id, body.query[:80]
    )

    query_service = request.app.state.query_service
    try:
        result = await query_service.do_query(body)
    except TransientServiceError as exc:
        request.app.state.logging.error("Query failed: %s", exc)
        raise HTTPException(status_code=503, detail="Search is temporarily unavailable.")
    return JSONResponse(content=result.model_dump(mode="json", by_alias=True))
