from fastapi import FastAPI, UploadFile, File, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from core.themes import CHART_THEMES
from server.api import router as workspace_router
from server.orchestrator import end_workspace, get_workspace
from skills.normalize import dataset_summary, preview_rows
from skills.parse import IngestError
from dotenv import load_dotenv
import logging
import json

logger = logging.getLogger("uvicorn.error")
load_dotenv()
app = FastAPI(title="VizGenius", description="Upload a spreadsheet, get a chart and a data assistant")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount the workspace API router
app.include_router(workspace_router)


def require_session_id(request: Request) -> str:
    sid = request.headers.get("X-Session-Id")
    if not sid:
        raise HTTPException(status_code=400, detail="Missing X-Session-Id header.")
    return sid


def _log_response(ctx: str, payload) -> None:
    """Pretty-print JSON-able payloads; fall back to str()."""
    try:
        logger.info("%s response: %s", ctx, json.dumps(payload, indent=2, default=str, ensure_ascii=False))
    except Exception:
        logger.info("%s response (non-serializable): %s", ctx, str(payload))


@app.post("/upload")
async def upload(request: Request, file: UploadFile = File(...)):
    """
    Replace the session's dataset with the uploaded spreadsheet.

    The default chart configuration is returned immediately; advisory
    suggestions arrive later (GET /api/analysis or the SSE stream).
    """
    sid = require_session_id(request)
    content = await file.read()
    filename = file.filename or "table.xlsx"

    ws = get_workspace(sid)
    try:
        dataset = await ws.ingest(content, filename=filename, content_type=file.content_type)
    except IngestError as e:
        logger.warning("Upload rejected for session %s: %s", sid, e)
        raise HTTPException(status_code=400, detail=e.message)
    except Exception:
        logger.exception("Upload failed")
        raise HTTPException(status_code=500, detail="Upload failed")

    resp = {
        "ok": True,
        "dataset": dataset_summary(dataset),
        "config": ws.config.model_dump(mode="json") if ws.config else None,
        "file_size": len(content),
    }
    _log_response("UPLOAD", resp)
    return resp


@app.get("/dataset")
async def dataset_state(request: Request):
    sid = require_session_id(request)
    return get_workspace(sid).state()


@app.get("/dataset/preview")
async def dataset_preview(request: Request, offset: int = 0, limit: int = 50):
    """Get a preview of the dataset rows with cursor pagination."""
    sid = require_session_id(request)
    ws = get_workspace(sid)
    if ws.dataset is None:
        raise HTTPException(status_code=404, detail="No dataset loaded.")
    resp = preview_rows(ws.dataset, offset=offset, limit=limit)
    _log_response("PREVIEW", {k: v for k, v in resp.items() if k != "rows"})
    return resp


@app.delete("/dataset")
async def clear_dataset(request: Request):
    """Discard the dataset, its configuration, its conversation and the session."""
    sid = require_session_id(request)
    await end_workspace(sid)
    return {"ok": True}


@app.get("/themes")
async def themes():
    return {"themes": [t.model_dump() for t in CHART_THEMES]}
