"""
FastAPI adapter exposing the agent as an SSE endpoint.

Start with:
    companion serve
or
    uvicorn companion.server:app --host 127.0.0.1 --port 8000

Endpoints
---------
POST   /agent     Run the agent over a conversation; returns an SSE stream
GET    /tools     Tool catalog as sent upstream
GET    /health    Liveness + configured model

SSE event types (on POST /agent)
--------------------------------
thinking     {"content": "..."}
tool_start   {"name": "generate_diary", "label": "...", "args": "{...}"}
tool_result  {"name": "generate_diary", "label": "...", "result": "..."}
text         {"content": "..."}
error        {"code": "upstream_error", "message": "..."}
The stream always ends with ``data: [DONE]``.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Literal

from fastapi import FastAPI, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from companion.config import CompanionConfig, find_config_path, load_config
from companion.stack import Stack, build_stack

logger = logging.getLogger(__name__)


# ── Request models ───────────────────────────────────────────────────────────

class ChatTurn(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str = ""


class AgentRequest(BaseModel):
    messages: list[ChatTurn] = Field(default_factory=list)


# ── App ──────────────────────────────────────────────────────────────────────

def create_app(
    config: CompanionConfig | None = None,
    stack: Stack | None = None,
) -> FastAPI:
    """Build the app.  A prebuilt *stack* wins over *config* (used by tests)."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "stack", None) is None:
            cfg = config or load_config(find_config_path())
            app.state.stack = build_stack(cfg)
        logger.info(
            "Agent ready: model=%s tools=%s",
            app.state.stack.provider.model,
            app.state.stack.registry.names(),
        )
        yield
        await app.state.stack.aclose()

    app = FastAPI(
        title="Companion Agent",
        description="Streaming life-assistant agent with server-side tools.",
        lifespan=lifespan,
    )
    app.state.stack = stack

    @app.post("/agent")
    async def agent(body: AgentRequest, request: Request):
        """Stream the agent's response to *body* as ``text/event-stream``."""
        orchestrator = request.app.state.stack.orchestrator
        history = [turn.model_dump() for turn in body.messages]

        return StreamingResponse(
            orchestrator.stream(history),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # disable nginx buffering
            },
        )

    @app.get("/tools")
    async def tools(request: Request):
        return request.app.state.stack.registry.to_openai_schema()

    @app.get("/health")
    async def health(request: Request):
        stack = request.app.state.stack
        return {
            "status": "ok",
            "model": stack.provider.model,
            "tools": stack.registry.names(),
        }

    return app


app = create_app()
