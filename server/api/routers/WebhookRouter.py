"""Webhook router for document store events.

The document store calls POST /webhook/document whenever a document is
created, updated or deleted. The handler re-indexes or removes the document
in the background so the vector index stays current.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse

from shared.dependencies.auth import verify_api_key
from shared.models.indexing import DocumentEvent, WebhookRequest

webhook_router = APIRouter()


@webhook_router.post(
    "/webhook/document",
    dependencies=[Depends(verify_api_key)],
    tags=["Webhook"],
)
async def handle_document_webhook(request: Request, body: WebhookRequest, background_tasks: BackgroundTasks) -> JSONResponse:
    """Handle a document created, updated or deleted event.

    The indexing work runs after the response has been sent.

    Args:
        request (Request): The incoming FastAPI request (carries app state).
        body (WebhookRequest): The affected document and event type.
        background_tasks (BackgroundTasks): FastAPI background task queue.

    Returns:
        JSONResponse: Acknowledgement with the received document id.
    """
    request.app.state.logging.info("Webhook received: %s document_id=%s", body.event.value, body.document_id)

    indexing_service = request.app.state.indexing_service
    if body.event == DocumentEvent.DELETED:
        background_tasks.add_task(indexing_service.remove_from_index, body.document_id)
    else:
        background_tasks.add_task(indexing_service.index_document, body.document_id)

    return JSONResponse(content={"status": "accepted", "documentId": body.document_id, "event": body.event.value})
