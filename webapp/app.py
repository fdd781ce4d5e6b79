"""FastAPI service for keynote takeaway generation.

Launch:
    python -m uvicorn webapp.app:app --reload --port 8501

Or via pipeline:
    python pipeline.py serve --port 8501

Requests only create runs and hand them to the run queue; pollers read the
stored status, and an external renderer picks up the hand-off payload and
reports back through the complete/fail callbacks.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Dict, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from schemas.errors import RunNotFoundError, RunStateError, ScriptFormatError
from schemas.generation import Customization, GenerationFormat, RequesterProfile
from schemas.run import GenerationRun

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Request/Response models
# ---------------------------------------------------------------------------

class GenerationRequest(BaseModel):
    user_id: str = Field(min_length=1, max_length=100)
    format: GenerationFormat
    profile: RequesterProfile = Field(default_factory=RequesterProfile)
    presenter_name: Optional[str] = Field(None, max_length=100)
    customization: Customization = Field(default_factory=Customization)


class CompleteRequest(BaseModel):
    output_urls: Dict[str, str] = Field(default_factory=dict)
    thumbnail_url: Optional[str] = None


class FailRequest(BaseModel):
    message: str = Field(min_length=1, max_length=500)


def _run_status(run: GenerationRun) -> dict:
    return {
        "id": run.id,
        "format": run.format.value,
        "status": run.status.value,
        "status_message": run.status_message,
        "error_message": run.error_message,
        "retry_count": run.retry_count,
        "takeaway_plan": run.takeaway_plan.model_dump() if run.takeaway_plan else None,
        "script": run.script,
        "output_urls": run.output_urls,
        "thumbnail_url": run.thumbnail_url,
        "created_at": run.created_at.isoformat(),
        "updated_at": run.updated_at.isoformat(),
        "completed_at": run.completed_at.isoformat() if run.completed_at else None,
    }


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(components=None) -> FastAPI:
    """Build the API around a ``pipeline.Components`` bundle.

    Without one, components are built from the environment on first use.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if app.state.components is not None:
            app.state.components.queue.shutdown(wait=False)

    app = FastAPI(
        title="Keynote Takeaway Generator",
        description="Personalized video, podcast and slide takeaways from keynote transcripts",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.components = components

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def _components(request: Request):
        state = request.app.state
        if state.components is None:
            from pipeline import build_components
            from settings import Settings

            load_dotenv()
            state.components = build_components(Settings.from_env())
        return state.components

    def _get_run_or_404(request: Request, generation_id: str) -> GenerationRun:
        try:
            return _components(request).orchestrator.get_run(generation_id)
        except RunNotFoundError:
            raise HTTPException(status_code=404, detail="Generation not found")

    # -----------------------------------------------------------------------
    # Routes
    # -----------------------------------------------------------------------

    @app.get("/api/health")
    async def api_health(request: Request):
        components = _components(request)
        return {
            "status": "ok",
            "generation_enabled": components.gate.is_enabled(),
        }

    @app.post("/api/generations", status_code=202)
    async def api_create_generation(req: GenerationRequest, request: Request):
        """Accept a generation request and queue it for background processing."""
        components = _components(request)
        if not components.gate.is_enabled():
            raise HTTPException(status_code=503, detail="Generation is temporarily disabled")

        run = GenerationRun(
            id=str(uuid.uuid4()),
            user_id=req.user_id,
            format=req.format,
            profile=req.profile,
            presenter_name=req.presenter_name,
            customization=req.customization,
        )
        components.store.create_run(run)
        components.queue.submit(run.id)

        return {"generation_id": run.id, "status": run.status.value}

    @app.get("/api/generations/{generation_id}")
    async def api_get_generation(generation_id: str, request: Request):
        return _run_status(_get_run_or_404(request, generation_id))

    @app.get("/api/generations/{generation_id}/render-job")
    async def api_render_job(generation_id: str, request: Request):
        """Hand-off payload for the media renderer."""
        _get_run_or_404(request, generation_id)
        try:
            job = _components(request).orchestrator.render_job(generation_id)
        except RunStateError as e:
            raise HTTPException(status_code=409, detail=e.message)
        except ScriptFormatError as e:
            raise HTTPException(status_code=422, detail=e.message)
        return job.model_dump(mode="json")

    @app.post("/api/generations/{generation_id}/complete")
    async def api_complete_generation(generation_id: str, req: CompleteRequest, request: Request):
        _get_run_or_404(request, generation_id)
        try:
            run = _components(request).orchestrator.mark_completed(
                generation_id, req.output_urls, req.thumbnail_url
            )
        except RunStateError as e:
            raise HTTPException(status_code=409, detail=e.message)
        return _run_status(run)

    @app.post("/api/generations/{generation_id}/fail")
    async def api_fail_generation(generation_id: str, req: FailRequest, request: Request):
        _get_run_or_404(request, generation_id)
        try:
            run = _components(request).orchestrator.mark_failed(generation_id, req.message)
        except RunStateError as e:
            raise HTTPException(status_code=409, detail=e.message)
        return _run_status(run)

    return app


app = create_app()
