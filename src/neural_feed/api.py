from __future__ import annotations

from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import get_settings
from .events import encode_sse, to_wire
from .services.pipeline import PipelineOrchestrator

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class FeedRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str | None = None
    candidate_id: str | None = Field(default=None, alias="candidateId")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _stream(events: Iterator[dict[str, Any]]) -> Iterator[str]:
    for event in events:
        yield encode_sse(event)


def create_app(orchestrator: PipelineOrchestrator | None = None) -> FastAPI:
    settings = get_settings()
    pipeline = orchestrator or PipelineOrchestrator.from_settings(settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        pipeline.close()

    app = FastAPI(title="neural-feed", version="0.1.0", lifespan=lifespan)
    app.state.orchestrator = pipeline

    @app.get("/healthz")
    def healthz() -> dict[str, str]:
        return {
            "status": "ok",
            "ai_provider": settings.resolved_ai_provider(),
            "search_backend": settings.resolved_search_backend(),
        }

    @app.post("/api/feed")
    async def post_feed(request: Request, phase: str = Query(default="discover")):
        try:
            payload = await request.json()
        except ValueError:
            payload = {}
        try:
            body = FeedRequest.model_validate(payload if isinstance(payload, dict) else {})
        except ValidationError:
            body = FeedRequest()

        name = (body.name or "").strip()
        if not name:
            return _error(400, "Name is required.")

        if phase == "discover":
            events = pipeline.discover_events(name)
        else:
            events = pipeline.run_events(name, body.candidate_id)
        return StreamingResponse(_stream(events), media_type="text/event-stream", headers=SSE_HEADERS)

    @app.get("/api/feed")
    def get_feed(
        item_id: str | None = Query(default=None, alias="itemId"),
        name: str = Query(default="You"),
    ):
        if not item_id:
            return _error(400, "itemId is required.")
        digest = pipeline.deepen(item_id, name)
        if digest is None:
            return _error(404, "Feed item expired or unknown.")
        return to_wire(digest)

    return app
