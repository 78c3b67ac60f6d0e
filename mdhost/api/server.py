"""
mdhost: Revision API Server
===========================

Resource-oriented API over the revision orchestrator.

Endpoints:
- GET     /f/{name}          -> latest revision rendered to HTML
- GET     /r/{sha}           -> raw revision bytes
- GET     /x/exists/{name}   -> {"exists": bool}
- GET     /x/meta/{name}     -> FileRecord JSON
- OPTIONS /c/{name}          -> no-op (preflight)
- POST    /c/{name}          -> create file
- PUT     /c/{name}          -> append revision from request body

Storage-touching endpoints are plain `def` functions, so each request
runs on its own worker thread. Nothing here holds a lock across a
storage call.

Usage:
    uvicorn mdhost.api.server:app_from_env --factory
"""
from __future__ import annotations
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, Response
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import ClientDisconnect

from .. import __version__
from ..config import ServiceConfig
from ..contracts.base import Result
from ..contracts.records import DEFAULT_CONTENT_TYPE
from ..engine import RevisionOrchestrator
from ..observability import AuditLog
from ..render import MarkdownRenderer
from ..storage import create_content_store, create_file_registry
from .mapper import (
    EXISTS_ERROR, FILE_CREATION, INTERNAL_ERROR, INVALID_REQUEST, IO_ERROR,
    READ_OVERRIDES, SHA_MISSING,
    ErrorMapping, map_error, map_file_to_dto, map_http_status, revision_media_type,
)


logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json; charset=utf-8"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "accept, content-type",
    "Access-Control-Allow-Methods": "GET, POST, PUT, PATCH",
}


# =============================================================================
# RESPONSE MODELS
# =============================================================================

class ErrorResponse(BaseModel):
    error_code: str
    error_message: str


class ExistsResponse(BaseModel):
    exists: bool


class RevisionResponse(BaseModel):
    sha: str


class FileMetaResponse(BaseModel):
    name: str
    content_type: str
    revisions: List[str]
    created_at: str


def error_response(mapping: ErrorMapping, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=mapping.status_code,
        content=mapping.to_dict(),
        media_type=JSON_MEDIA_TYPE,
        headers=headers
    )


def failure_response(result: Result, overrides=None) -> JSONResponse:
    mapping = map_error(result.error, overrides)
    logger.info(
        "request failed: %s (%s) -> %d %s",
        result.error.code.name, result.error.message,
        mapping.status_code, mapping.error_code
    )
    return error_response(mapping)


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_orchestrator(request: Request) -> RevisionOrchestrator:
    return request.app.state.orchestrator


def get_renderer(request: Request) -> MarkdownRenderer:
    return request.app.state.renderer


# =============================================================================
# ENDPOINTS
# =============================================================================

router = APIRouter()


@router.get("/health")
def health_check():
    """System status."""
    return {"status": "online"}


@router.get("/f/{name:path}", response_class=HTMLResponse)
def get_latest_revision(
    name: str,
    orchestrator: RevisionOrchestrator = Depends(get_orchestrator),
    renderer: MarkdownRenderer = Depends(get_renderer),
):
    """Resolve the latest revision of `name` and render it as a page."""
    result = orchestrator.resolve_latest(name)
    if result.is_failure:
        return failure_response(result, READ_OVERRIDES)

    logger.debug("rendering latest revision of %r (%d bytes)", name, len(result.value))
    return HTMLResponse(renderer.render_page(name, result.value))


@router.get("/r/")
def get_revision_missing_sha():
    return error_response(SHA_MISSING)


@router.get("/r/{sha}")
def get_revision(
    sha: str,
    orchestrator: RevisionOrchestrator = Depends(get_orchestrator),
):
    """Raw bytes of one revision."""
    result = orchestrator.resolve_revision_hex(sha)
    if result.is_failure:
        return failure_response(result, READ_OVERRIDES)

    return Response(content=result.value, media_type=revision_media_type(result.value))


@router.get("/x/exists/{name:path}", response_model=ExistsResponse)
def file_exists(
    name: str,
    orchestrator: RevisionOrchestrator = Depends(get_orchestrator),
):
    result = orchestrator.file_exists(name)
    if result.is_failure:
        return failure_response(result, {result.error.code: EXISTS_ERROR})
    return ExistsResponse(exists=result.value)


@router.get("/x/meta/{name:path}", response_model=FileMetaResponse)
def get_file_meta(
    name: str,
    orchestrator: RevisionOrchestrator = Depends(get_orchestrator),
):
    result = orchestrator.get_file(name)
    if result.is_failure:
        return failure_response(result, READ_OVERRIDES)
    return FileMetaResponse(**map_file_to_dto(result.value))


@router.options("/c/{name:path}")
def noop(name: str):
    """Preflight on the write path does nothing."""
    return Response(status_code=200)


@router.post("/c/{name:path}", response_model=FileMetaResponse)
def create_file(
    name: str,
    content_type: str = Query(DEFAULT_CONTENT_TYPE),
    orchestrator: RevisionOrchestrator = Depends(get_orchestrator),
):
    result = orchestrator.create_file(name, content_type)
    if result.is_failure:
        return failure_response(result, {result.error.code: FILE_CREATION})
    return FileMetaResponse(**map_file_to_dto(result.value))


@router.put("/c/{name:path}", response_model=RevisionResponse)
async def new_revision(
    name: str,
    request: Request,
    orchestrator: RevisionOrchestrator = Depends(get_orchestrator),
):
    """Append the request body as the newest revision of `name`."""
    found = await run_in_threadpool(orchestrator.get_file, name)
    if found.is_failure:
        return failure_response(found)

    try:
        body = await request.body()
    except ClientDisconnect:
        logger.warning("client disconnected while uploading revision for %r", name)
        return error_response(IO_ERROR)

    result = await run_in_threadpool(orchestrator.add_revision, name, body)
    if result.is_failure:
        return failure_response(result)
    return RevisionResponse(sha=result.value.hex)


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(
    orchestrator: RevisionOrchestrator,
    config: Optional[ServiceConfig] = None,
) -> FastAPI:
    """Build the ASGI app around an existing orchestrator."""
    config = config or ServiceConfig()

    app = FastAPI(
        title="mdhost",
        version=__version__,
        description="Versioned, content-addressed markdown documents",
    )
    app.state.config = config
    app.state.orchestrator = orchestrator
    app.state.renderer = MarkdownRenderer(config.template)

    @app.middleware("http")
    async def permissive_cors_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        response = error_response(map_http_status(exc.status_code))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        logger.info("rejected request to %s: %s", request.url.path, exc.errors())
        return error_response(INVALID_REQUEST)

    # Runs outside the middleware stack, so CORS headers are set here
    @app.exception_handler(Exception)
    async def internal_error(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return error_response(INTERNAL_ERROR, headers=CORS_HEADERS)

    app.include_router(router)
    return app


def build_orchestrator(config: ServiceConfig) -> RevisionOrchestrator:
    """Wire storage backends for `config` into an orchestrator."""
    return RevisionOrchestrator(
        content_store=create_content_store(config.storage),
        file_registry=create_file_registry(config.storage),
        audit_log=AuditLog(layer_name="engine", max_entries=config.audit_log_size),
    )


def app_from_env() -> FastAPI:
    """uvicorn --factory entry point configured from MDHOST_* variables."""
    config = ServiceConfig.from_env()
    return create_app(build_orchestrator(config), config)
