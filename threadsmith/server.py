"""HTTP API for thread generation.

Endpoints:
    POST /api/generate-thread      Baseline thread generation
    POST /api/analyze-topic        Intention analysis for a topic
    POST /api/generate-with-context  Enriched generation with web research
    POST /api/regenerate-post      Rewrite a single post
    GET  /api/health               Liveness and provider report

Run with ``python -m threadsmith.main serve`` or
``uvicorn threadsmith.server:create_app --factory``.
"""

from collections.abc import Callable
from datetime import datetime, timezone
import logging
from typing import Any, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from threadsmith.agent.thread_assembler import GenerationError, ThreadAssembler
from threadsmith.config import Settings, load_settings
from threadsmith.engines.thread_models import InvalidRequestError


logger = logging.getLogger(__name__)


AssemblerFactory = Callable[[Settings], ThreadAssembler]


class GenerateThreadRequest(BaseModel):
    topic: Optional[str] = None
    context: Optional[str] = None
    tone: Optional[str] = None
    count: Any = None


class AnalyzeTopicRequest(BaseModel):
    topic: Optional[str] = None
    context: Optional[str] = None


class GenerateWithContextRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    topic: Optional[str] = None
    context: Optional[str] = None
    refined_intention: Optional[str] = Field(default=None, alias="refinedIntention")
    domain: Optional[str] = None
    count: Any = None


class RegeneratePostRequest(BaseModel):
    id: str = "post-1"
    content: Optional[str] = None
    context: Optional[str] = None


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_assembler(request: Request) -> ThreadAssembler:
    """Build a fresh assembler per request; nothing is shared between calls."""
    return request.app.state.assembler_factory(request.app.state.settings)


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(InvalidRequestError)
    async def invalid_request_handler(request: Request, exc: InvalidRequestError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning(f"Rejected malformed request to {request.url.path}: {exc.errors()}")
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})

    @app.exception_handler(GenerationError)
    async def generation_error_handler(request: Request, exc: GenerationError) -> JSONResponse:
        logger.error(f"Generation failed on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": exc.cause, "troubleshooting": exc.troubleshooting},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(
    settings: Settings | None = None,
    assembler_factory: AssemblerFactory | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Configuration; loaded from the environment if None.
        assembler_factory: Builds an assembler from settings for each
            request. Defaults to ``ThreadAssembler.from_settings``.
    """
    app = FastAPI(
        title="Threadsmith API",
        description="Generate social-media threads from a topic with an LLM backend",
        version="1.0.0",
    )
    app.state.settings = settings or load_settings()
    app.state.assembler_factory = assembler_factory or ThreadAssembler.from_settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_exception_handlers(app)

    @app.post("/api/generate-thread")
    async def generate_thread(
        body: GenerateThreadRequest,
        assembler: ThreadAssembler = Depends(get_assembler),
    ) -> dict[str, Any]:
        thread = await assembler.generate_thread(
            body.topic,
            context=body.context,
            tone=body.tone,
            count=body.count,
        )
        return {"thread": thread.to_dict()}

    @app.post("/api/analyze-topic")
    async def analyze_topic(
        body: AnalyzeTopicRequest,
        assembler: ThreadAssembler = Depends(get_assembler),
    ) -> dict[str, Any]:
        analysis = await assembler.analyze_intention(body.topic, context=body.context)
        return analysis.to_dict()

    @app.post("/api/generate-with-context")
    async def generate_with_context(
        body: GenerateWithContextRequest,
        assembler: ThreadAssembler = Depends(get_assembler),
    ) -> dict[str, Any]:
        thread = await assembler.generate_thread_with_context(
            body.topic,
            context=body.context,
            refined_intention=body.refined_intention,
            domain_hint=body.domain,
            count=body.count,
        )
        return {"thread": thread.to_dict()}

    @app.post("/api/regenerate-post")
    async def regenerate_post(
        body: RegeneratePostRequest,
        assembler: ThreadAssembler = Depends(get_assembler),
    ) -> dict[str, Any]:
        if not body.content or not body.content.strip():
            raise InvalidRequestError("Post content is required")
        post = await assembler.regenerate_post(body.id, body.content, body.context)
        return {"post": post.to_dict()}

    @app.get("/api/health")
    async def health(settings: Settings = Depends(get_settings)) -> dict[str, Any]:
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": settings.environment,
            "provider": settings.provider,
        }

    return app
