"""Edit router: turns a free-text edit request into reviewable suggestions."""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from shared.dependencies.auth import verify_api_key
from shared.errors import ValidationError
from shared.models.edit import EditRequest

edit_router = APIRouter()


@edit_router.post(
    "/edit",
    dependencies=[Depends(verify_api_key)],
    tags=["Edit"],
)
async def handle_edit(request: Request, body: EditRequest) -> JSONResponse:
    """Handle an edit request for documents of one collection.

    Per-document generation failures only reduce the result; a missing
    collection id is rejected.

    Args:
        request (Request): The incoming FastAPI request (carries app state).
        body (EditRequest): Request text, collection id and explicit document references.

    Returns:
        JSONResponse: Result message, edit summary, suggestions and files to open.

    Raises:
        HTTPException: 400 for invalid requests, 500 for unexpected failures.
    """
    edit_service = request.app.state.edit_service
    try:
        result = await edit_service.do_edit(body)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        request.app.state.logging.exception("Edit request failed: %s", exc)
        raise HTTPException(status_code=500, detail="An error occurred while processing your edit request.")
    return JSONResponse(content=result.model_dump(mode="json", by_alias=True))
