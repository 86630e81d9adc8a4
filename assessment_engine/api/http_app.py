from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import Awaitable, Callable
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware

from assessment_engine.api.handlers.assess import assess_handler
from assessment_engine.api.handlers.cache_status import check_cache_status_handler
from assessment_engine.api.handlers.coach import coach_handler
from assessment_engine.api.handlers.deps import ApiDeps
from assessment_engine.api.handlers.judge import judge_handler
from assessment_engine.api.handlers.qualify import qualify_skills_handler
from assessment_engine.api.handlers.roleplay import coach_roleplay_handler
from assessment_engine.api.schemas import (
    AssessRequest,
    AssessResponse,
    CacheStatusRequest,
    CacheStatusResponse,
    CoachRequest,
    CoachRoleplayRequest,
    CoachRoleplayResponse,
    ErrorResponse,
    HealthResponse,
    JudgeRequest,
    JudgeResponse,
    QualifySkillsRequest,
    QualifySkillsResponse,
)
from assessment_engine.domain.error_taxonomy import error_code_for, http_status_for
from assessment_engine.domain.errors import DomainError
from assessment_engine.domain.models import Assessment

SERVICE_NAME = "assessment-engine"
CORS_ALLOW_METHODS = ["POST", "GET", "OPTIONS"]
CORS_ALLOW_HEADERS = ["Content-Type", "Authorization"]
CORS_MAX_AGE_SECONDS = 86400

ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def build_app(
    run_id: str,
    api_deps: ApiDeps,
    allow_origin: str = "*",
    on_startup: Callable[[], Awaitable[None]] | None = None,
    on_shutdown: Callable[[], Awaitable[None]] | None = None,
) -> FastAPI:
    logger = logging.getLogger("runtime")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        del app
        logger.info("service started", extra={"service": SERVICE_NAME, "run_id": run_id})

        if on_startup is not None:
            await on_startup()

        yield

        if on_shutdown is not None:
            await on_shutdown()

        logger.info("service stopped", extra={"service": SERVICE_NAME, "run_id": run_id})

    app = FastAPI(title="sales-skills-assessment-engine", version="0.1.0", lifespan=lifespan)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        del request
        return _error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        del request
        return _error_response(400, _describe_validation_error(exc))

    @app.exception_handler(DomainError)
    async def domain_error(request: Request, exc: DomainError) -> JSONResponse:
        code = error_code_for(exc)
        status = http_status_for(code)
        if status >= 500:
            logger.error(
                "%s %s failed (%s): %s",
                request.method,
                request.url.path,
                code,
                exc,
                extra={"service": SERVICE_NAME, "status": status},
            )
        return _error_response(status, str(exc))

    # Registered before CORSMiddleware so it sits inside it: unexpected errors
    # become JSON responses that still receive CORS headers.
    @app.middleware("http")
    async def unhandled_error(request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            logger.exception(
                "%s %s failed: %s",
                request.method,
                request.url.path,
                exc,
                extra={"service": SERVICE_NAME, "status": 500},
            )
            return _error_response(500, str(exc) or "An internal error occurred.")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[allow_origin],
        allow_methods=CORS_ALLOW_METHODS,
        allow_headers=CORS_ALLOW_HEADERS,
        max_age=CORS_MAX_AGE_SECONDS,
    )

    # Outermost: CORSMiddleware only decorates requests that send Origin, so the
    # configured origin is stamped on every response here, and rejected
    # preflights get the JSON error body.
    @app.middleware("http")
    async def cors_on_every_response(request: Request, call_next):
        response = await call_next(request)
        if response.status_code == 400 and _is_preflight(request):
            body = b"".join([chunk async for chunk in response.body_iterator])
            response = _error_response(400, body.decode("utf-8") or "Disallowed CORS request")
        response.headers.setdefault("Access-Control-Allow-Origin", allow_origin)
        if "origin" not in response.headers.get("vary", "").lower():
            response.headers.add_vary_header("Origin")
        return response

    def _health() -> HealthResponse:
        return HealthResponse(
            status="ok",
            service=SERVICE_NAME,
            cache_backend=api_deps.cache_backend,
            llm_backend=api_deps.llm_backend,
        )

    @app.get("/", response_model=HealthResponse, tags=["System"])
    async def root() -> HealthResponse:
        return _health()

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health() -> HealthResponse:
        return _health()

    @app.get("/healthz", response_model=HealthResponse, tags=["System"])
    async def healthz() -> HealthResponse:
        return _health()

    @app.post("/qualify-skills", response_model=QualifySkillsResponse, responses=ERROR_RESPONSES, tags=["Stages"])
    async def qualify_skills(request: QualifySkillsRequest) -> QualifySkillsResponse:
        return await qualify_skills_handler(request=request, api_deps=api_deps)

    @app.post("/judge", response_model=JudgeResponse, responses=ERROR_RESPONSES, tags=["Stages"])
    async def judge(request: JudgeRequest) -> JudgeResponse:
        return await judge_handler(request=request, api_deps=api_deps)

    @app.post("/coach", response_model=Assessment, responses=ERROR_RESPONSES, tags=["Stages"])
    async def coach(request: CoachRequest) -> Assessment:
        return await coach_handler(request=request, api_deps=api_deps)

    @app.post("/coach-roleplay", response_model=CoachRoleplayResponse, responses=ERROR_RESPONSES, tags=["Stages"])
    async def coach_roleplay(request: CoachRoleplayRequest) -> CoachRoleplayResponse:
        return await coach_roleplay_handler(request=request, api_deps=api_deps)

    @app.post("/assess", response_model=AssessResponse, responses=ERROR_RESPONSES, tags=["Pipeline"])
    async def assess(request: AssessRequest) -> AssessResponse:
        return await assess_handler(request=request, api_deps=api_deps)

    @app.post("/check-cache-status", response_model=CacheStatusResponse, responses=ERROR_RESPONSES, tags=["Pipeline"])
    async def check_cache_status(request: CacheStatusRequest) -> CacheStatusResponse:
        return await check_cache_status_handler(request=request, api_deps=api_deps)

    return app


def _error_response(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def _is_preflight(request: Request) -> bool:
    return request.method == "OPTIONS" and "access-control-request-method" in request.headers


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request body."
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "invalid value")
    if not location:
        return f"Invalid request body: {message}"
    return f"Invalid '{location}': {message}"
