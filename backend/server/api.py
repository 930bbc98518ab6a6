"""
Workspace API routes, mounted as a sub-router on the main FastAPI app.

Chart configuration, advisory suggestions, conversation and the SSE stream
of asynchronous workspace changes.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import StreamingResponse

from core.models import ChatRequest, ConfigUpdateRequest
from server.orchestrator import NoDataset, WorkspaceSession, get_workspace
from skills.validate import InvalidConfiguration

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/api", tags=["workspace"])


def _require_session_id(request: Request) -> str:
    sid = request.headers.get("X-Session-Id")
    if not sid:
        raise HTTPException(status_code=400, detail="Missing X-Session-Id header.")
    return sid


def _workspace(request: Request) -> WorkspaceSession:
    return get_workspace(_require_session_id(request))


def _no_dataset(e: NoDataset) -> HTTPException:
    return HTTPException(status_code=409, detail=str(e))


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/config")
async def get_config(request: Request):
    ws = _workspace(request)
    return {"config": ws.config.model_dump(mode="json") if ws.config else None}


@router.put("/config")
async def update_config(request: Request, body: ConfigUpdateRequest):
    """Manual edit of the live configuration; the last write wins."""
    ws = _workspace(request)
    try:
        config = await ws.update_config(body)
    except NoDataset as e:
        raise _no_dataset(e)
    except InvalidConfiguration as e:
        raise HTTPException(status_code=422, detail=e.warnings)
    return {"config": config.model_dump(mode="json")}


@router.get("/analysis")
async def get_analysis(request: Request):
    return _workspace(request).analysis_payload()


@router.post("/suggestions/{index}/apply")
async def apply_suggestion(request: Request, index: int):
    ws = _workspace(request)
    try:
        config = await ws.apply_suggestion(index)
    except NoDataset as e:
        raise _no_dataset(e)
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidConfiguration as e:
        raise HTTPException(status_code=422, detail=e.warnings)
    return {"config": config.model_dump(mode="json")}


@router.get("/chart")
async def get_chart(request: Request):
    """Renderer spec for the live configuration (null when there is none)."""
    ws = _workspace(request)
    try:
        spec = ws.chart_spec()
    except NoDataset as e:
        raise _no_dataset(e)
    except InvalidConfiguration as e:
        raise HTTPException(status_code=422, detail=e.warnings)
    return {"spec": spec.model_dump(mode="json") if spec else None}


@router.get("/chat")
async def get_chat(request: Request):
    ws = _workspace(request)
    return {
        "available": ws.conversation.available,
        "turns": [t.model_dump(mode="json") for t in ws.conversation.turns],
    }


@router.post("/chat")
async def post_chat(request: Request, body: ChatRequest):
    ws = _workspace(request)
    try:
        reply = await ws.submit_chat(body.text)
    except NoDataset as e:
        raise _no_dataset(e)
    return {
        "reply": reply.model_dump(mode="json") if reply else None,
        "turns": [t.model_dump(mode="json") for t in ws.conversation.turns],
    }


@router.get("/events")
async def stream_events(
    request: Request,
    session_id: str = Query(None, alias="session_id"),
):
    """
    SSE endpoint: streams workspace events for this session.

    EventSource doesn't support custom headers, so session_id may be passed
    as a query parameter.
    """
    sid = session_id or request.headers.get("X-Session-Id")
    if not sid:
        raise HTTPException(status_code=400, detail="Missing session_id query parameter.")

    channel = await get_workspace(sid).subscribe()

    async def _stream():
        async for event_str in channel:
            yield event_str

    return StreamingResponse(
        _stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
