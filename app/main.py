"""FastAPI entrypoint wiring services together."""
from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from app.config import Settings, get_settings
from app.database import build_engine, build_sessionmaker, init_models
from app.dependencies import pipeline_provider
from app.exceptions import InternalError, SubmissionError
from app.log import configure_logging
from app.postings import POSTINGS
from app.schemas import PostingSummary, SubmissionResult
from services import ApplicationRepository, SubmissionPipeline, TurnstileVerifier, build_storage
from services.forms import parse_form
from services.storage import AttachmentStorage
from services.verification import HumanVerifier

logger = structlog.get_logger()


def _json(result: SubmissionResult) -> JSONResponse:
    return JSONResponse(result.body(), status_code=result.status_code)


def create_app(
    settings: Settings | None = None,
    *,
    verifier: HumanVerifier | None = None,
    storage: AttachmentStorage | None = None,
    repository: ApplicationRepository | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    engine = build_engine(settings)
    if repository is None:
        repository = ApplicationRepository(build_sessionmaker(engine), timeout=settings.database_timeout_seconds)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:  # pragma: no cover - framework hook
        await init_models(engine)
        yield
        await engine.dispose()

    app = FastAPI(
        title="Careers",
        version="0.1.0",
        docs_url="/docs" if settings.development_mode else None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.pipeline = SubmissionPipeline(
        settings,
        verifier=verifier or TurnstileVerifier(settings),
        storage=storage or build_storage(settings),
        repository=repository,
    )

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", path=request.url.path)
        return _json(SubmissionResult.failure(InternalError(repr(exc))))

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/postings", response_model=list[PostingSummary])
    async def list_postings() -> list[PostingSummary]:
        return [posting.summary() for posting in POSTINGS.values()]

    @app.post("/api/apply")
    async def apply(
        request: Request,
        pipeline: SubmissionPipeline = Depends(pipeline_provider),
    ) -> JSONResponse:
        try:
            payload = await parse_form(request, max_bytes=settings.max_attachment_bytes)
        except SubmissionError as exc:
            logger.info("Unreadable application form", detail=exc.detail)
            return _json(SubmissionResult.failure(exc))

        return _json(await pipeline.process(payload, request.headers))

    return app


app = create_app()
