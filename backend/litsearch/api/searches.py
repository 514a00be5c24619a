"""
Search API Routes

FastAPI routes for running iterative literature searches, streaming
their progress and cancelling them.
"""
import asyncio
import json
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from litsearch.core.dependencies import get_orchestrator, get_registry
from litsearch.core.exceptions import InvalidSearchRequestError, SearchError, SearchNotFoundError
from litsearch.core.logging import get_logger
from litsearch.core.rate_limit import CANCEL_LIMIT, SEARCH_LIMIT, SEARCH_STREAM_LIMIT, limiter
from litsearch.schemas.events import SearchErrorEvent
from litsearch.schemas.search import SearchRequest, SearchResult
from litsearch.services.search import (
    CancellationToken,
    IterationOrchestrator,
    ProgressChannel,
    SearchRegistry,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/searches", tags=["searches"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def new_search_id() -> str:
    return uuid.uuid4().hex[:12]


def format_sse(event) -> str:
    return f"event: {event.type}\ndata: {json.dumps(event.to_wire())}\n\n"


def _consume_result(task: asyncio.Task) -> None:
    # Failures were already logged and emitted as search_error
    if not task.cancelled():
        task.exception()


@router.post("", response_model=SearchResult)
@limiter.limit(SEARCH_LIMIT)
async def run_search(
    request: Request,
    body: SearchRequest,
    orchestrator: IterationOrchestrator = Depends(get_orchestrator),
    registry: SearchRegistry = Depends(get_registry),
):
    """
    Run a search to completion and return the ranked documents.
    The search ID is in the result; progress is not streamed.
    """
    search_id = new_search_id()
    token = CancellationToken()
    registry.register(search_id, token)
    try:
        return await orchestrator.run(body, search_id=search_id, token=token)
    except SearchError as e:
        raise HTTPException(status_code=500, detail=str(e))
    finally:
        registry.unregister(search_id)


@router.post("/stream")
@limiter.limit(SEARCH_STREAM_LIMIT)
async def stream_search(
    request: Request,
    body: SearchRequest,
    orchestrator: IterationOrchestrator = Depends(get_orchestrator),
    registry: SearchRegistry = Depends(get_registry),
):
    """
    Run a search with Server-Sent Events progress.

    Event types:
    - iteration_start / iteration_progress / iteration_complete: per iteration
    - search_complete: the final result
    - search_error: the search could not finish

    Every event carries `searchId`, usable with the cancel route.
    """
    search_id = new_search_id()
    channel = ProgressChannel(search_id)
    registry.register(search_id, channel.token)

    async def event_generator():
        task = asyncio.create_task(orchestrator.run(body, channel=channel))
        task.add_done_callback(_consume_result)
        try:
            async for event in channel:
                yield format_sse(event)
        finally:
            if not task.done():
                # Client went away mid-search
                channel.cancel()
            registry.unregister(search_id)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={**SSE_HEADERS, "X-Search-Id": search_id},
    )


@router.post("/{search_id}/cancel")
@limiter.limit(CANCEL_LIMIT)
async def cancel_search(
    request: Request,
    search_id: str,
    registry: SearchRegistry = Depends(get_registry),
):
    """Ask a running search to stop and return what it has found so far."""
    try:
        registry.cancel(search_id)
    except SearchNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"searchId": search_id, "status": "cancelling"}


async def _listen_for_cancel(websocket: WebSocket, channel: ProgressChannel) -> None:
    try:
        while True:
            message = await websocket.receive_json()
            if isinstance(message, dict) and message.get("type") == "cancel":
                channel.cancel()
                return
    except WebSocketDisconnect:
        channel.cancel()


@router.websocket("/ws")
async def search_socket(
    websocket: WebSocket,
    orchestrator: IterationOrchestrator = Depends(get_orchestrator),
    registry: SearchRegistry = Depends(get_registry),
):
    """
    Bidirectional search session.

    Client sends {"type": "start", "query": ..., "targetCount": ...}, then
    may send {"type": "cancel"} at any point. The server streams every
    progress event as JSON and closes after the terminal event.
    """
    await websocket.accept()
    search_id = new_search_id()

    try:
        message = await websocket.receive_json()
    except WebSocketDisconnect:
        return

    try:
        if not isinstance(message, dict) or message.get("type") != "start":
            raise InvalidSearchRequestError("first message must be {\"type\": \"start\", ...}")
        body = SearchRequest.model_validate(message)
    except (InvalidSearchRequestError, ValidationError) as e:
        await websocket.send_json(SearchErrorEvent(search_id=search_id, message=str(e)).to_wire())
        await websocket.close(code=1003)
        return

    channel = ProgressChannel(search_id)
    registry.register(search_id, channel.token)
    task = asyncio.create_task(orchestrator.run(body, channel=channel))
    task.add_done_callback(_consume_result)
    listener = asyncio.create_task(_listen_for_cancel(websocket, channel))

    try:
        async for event in channel:
            await websocket.send_json(event.to_wire())
    except WebSocketDisconnect:
        channel.cancel()
        return
    finally:
        listener.cancel()
        registry.unregister(search_id)

    await websocket.close()
