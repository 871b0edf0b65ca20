"""FastAPI coordination endpoint hosted by the Leader."""

import logging

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import BaseModel, Field

from .core import DialogResolution
from .errors import PARSE_ERROR
from .fanout import event_stream
from .hub import DialogHub
from .rpc import RpcHandler
from .workspace import same_or_containing

logger = logging.getLogger(__name__)


class DialogBody(BaseModel):
    reason: str = ""
    workspace: str = ""


class RespondBody(BaseModel):
    id: str | None = None
    dialogId: str | None = None
    shouldContinue: bool = False
    userInput: str = ""
    attachments: list[dict] = Field(default_factory=list)


def _is_parse_error(response: dict) -> bool:
    return response.get("error", {}).get("code") == PARSE_ERROR


def create_app(hub: DialogHub) -> FastAPI:
    """Build the HTTP surface around a Leader's hub."""
    app = FastAPI(title="chat-hitl", version=hub.version)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    rpc = RpcHandler(hub, version=hub.version)
    app.state.hub = hub
    app.state.rpc = rpc

    # ── MCP transports ───────────────────────────────────────────

    @app.get("/sse")
    async def open_stream():
        """Push channel: endpoint announcement, mirrored responses, keepalives."""
        return StreamingResponse(
            event_stream(hub.broadcaster, hub.endpoint_url),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    @app.post("/sse")
    async def post_streamable(request: Request):
        """Streamable HTTP: one JSON-RPC message in, its response out."""
        response = await rpc.handle_body(await request.body())
        if response is None:
            return Response(status_code=202)
        status = 400 if _is_parse_error(response) else 200
        return JSONResponse(response, status_code=status)

    @app.post("/message")
    @app.post("/messages")
    @app.post("/mcp")
    async def post_message(request: Request):
        """JSON-RPC over POST, mirrored to every open push channel."""
        response = await rpc.handle_body(await request.body())
        if response is None:
            return Response(status_code=204)
        if _is_parse_error(response):
            return JSONResponse(response, status_code=400)
        hub.broadcaster.publish(response)
        return JSONResponse(response)

    # ── Coordination routes ──────────────────────────────────────

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "version": hub.version,
            "port": hub.port,
            "subscriberCount": len(hub.broadcaster),
            "pendingCount": len(hub.registry),
        }

    @app.post("/dialog")
    async def submit_dialog(body: DialogBody):
        """Submit a dialog and block until a human resolves it."""
        resolution = await hub.request_dialog(body.reason, body.workspace)
        return resolution.to_dict()

    @app.get("/pending")
    async def list_pending(
        workspace: str | None = Query(None, description="Filter by workspace containment"),
    ):
        return {"dialogs": [r.to_dict() for r in hub.registry.list_pending(workspace)]}

    @app.post("/respond")
    async def respond(body: RespondBody):
        dialog_id = body.id or body.dialogId
        if not dialog_id:
            raise HTTPException(status_code=400, detail="Missing dialog id")
        try:
            resolution = DialogResolution.from_dict(body.model_dump())
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        if not hub.respond(dialog_id, resolution):
            return JSONResponse(
                {"success": False, "error": "Dialog not found"}, status_code=404
            )
        return {"success": True}

    @app.get("/history")
    async def history(
        workspace: str | None = Query(None, description="Workspace to report on"),
    ):
        """Dialog count, history and pending/stale dialogs, per workspace or overall."""
        if workspace:
            entries = hub.ledger.entries(workspace)
            count = hub.ledger.count(workspace)
        else:
            entries = hub.ledger.all_entries()
            count = hub.ledger.total_count()
        stale = [r for r in hub.stale if not workspace or same_or_containing(r.workspace, workspace)]
        return {
            "workspace": workspace,
            "dialogCount": count,
            "history": [e.to_dict() for e in entries],
            "pending": [r.to_dict() for r in hub.registry.list_pending(workspace)],
            "stale": [r.to_dict() for r in stale],
        }

    return app
