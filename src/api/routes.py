"""FastAPI API routes for the local RAG service.

Provides REST endpoints for projects, file uploads, ingestion progress,
cancellation, queries, health and a debug view of the progress table.
Service dependencies are resolved from ``app.state`` via FastAPI's
``Depends`` using the ``Annotated`` pattern.

# ─── API ROUTE MAP ────────────────────────────────────────────────────
#
# Endpoint (under /api)                     Method  Description
# ─────────────────────────────────────────────────────────────────────
# /projects                                 GET     List projects, newest first
# /projects                                 POST    Create project
# /projects/{pid}                           GET     Get one project
# /projects/{pid}                           DELETE  Delete project + files + chunks
# /projects/{pid}/files                     GET     List files, newest first
# /projects/{pid}/files                     POST    Upload file → background ingestion
# /projects/{pid}/files/{fid}               DELETE  Delete file + chunks
# /projects/{pid}/files/{fid}/cancel        POST    Cancel ingestion
# /projects/{pid}/files/{fid}/status        GET     Poll ingestion progress
# /projects/{pid}/status                    GET     Aggregate project status
# /projects/{pid}/query                     POST    RAG query
# /health                                   GET     Liveness + Ollama reachability
# /debug/processing                         GET     Snapshot of the progress table
#
# The /api prefix comes from Settings.api_prefix and is applied in main.py.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile

from src.api.middleware import status_for_error
from src.api.schemas import (
    CreateProjectRequest,
    DeleteResponse,
    ErrorResponse,
    HealthResponse,
    ProcessingSnapshotResponse,
    QueryRequest,
    QueryResponse,
)
from src.config.settings import Settings
from src.interfaces.llm_provider import ILLMProvider
from src.models.progress import ProcessingStatus, ProjectStatus
from src.models.project import Project, ProjectFile
from src.services.project_service import ProjectService
from src.services.query_service import QueryService
from src.utils.errors import (
    InvalidStateError,
    LocalRagError,
    NotFoundError,
    ProjectBusyError,
    ValidationError,
)
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter()

# Uploads are read in 64 KB increments so oversized files are rejected
# without buffering the whole payload.
_UPLOAD_CHUNK_SIZE = 64 * 1024

# Errors a route expects and turns into a plain {"detail": ...} response.
_EXPECTED_ERRORS = (NotFoundError, ValidationError, ProjectBusyError, InvalidStateError)


def _http_error(exc: LocalRagError) -> HTTPException:
    return HTTPException(status_code=status_for_error(exc), detail=exc.message)


# ---------------------------------------------------------------------------
# Dependency injection helpers: resolve singletons from app.state
# ---------------------------------------------------------------------------


def _get_project_service(request: Request) -> ProjectService:
    """Return the project service from application state."""
    return request.app.state.project_service


def _get_query_service(request: Request) -> QueryService:
    return request.app.state.query_service


def _get_llm_provider(request: Request) -> ILLMProvider:
    return request.app.state.llm_provider


def _get_settings(request: Request) -> Settings:
    return request.app.state.settings


ProjectServiceDep = Annotated[ProjectService, Depends(_get_project_service)]
QueryServiceDep = Annotated[QueryService, Depends(_get_query_service)]
LLMProviderDep = Annotated[ILLMProvider, Depends(_get_llm_provider)]
SettingsDep = Annotated[Settings, Depends(_get_settings)]


# ---------------------------------------------------------------------------
# Project endpoints
# ---------------------------------------------------------------------------


@router.get("/projects", response_model=list[Project], summary="List projects")
async def list_projects(projects: ProjectServiceDep) -> list[Project]:
    return await projects.list_projects()


@router.post(
    "/projects",
    response_model=Project,
    status_code=201,
    responses={400: {"model": ErrorResponse}},
    summary="Create a project",
)
async def create_project(body: CreateProjectRequest, projects: ProjectServiceDep) -> Project:
    try:
        return await projects.create_project(
            name=body.name,
            embedding_model=body.embedding_model,
            chunk_size=body.chunk_size,
            embedding_type=body.embedding_type,
        )
    except ValidationError as exc:
        raise _http_error(exc) from exc


@router.get(
    "/projects/{project_id}",
    response_model=Project,
    responses={404: {"model": ErrorResponse}},
    summary="Get a project",
)
async def get_project(project_id: str, projects: ProjectServiceDep) -> Project:
    try:
        return await projects.get_project(project_id)
    except NotFoundError as exc:
        raise _http_error(exc) from exc


@router.delete(
    "/projects/{project_id}",
    response_model=DeleteResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Delete a project with its files and chunks",
)
async def delete_project(project_id: str, projects: ProjectServiceDep) -> DeleteResponse:
    try:
        await projects.delete_project(project_id)
    except NotFoundError as exc:
        raise _http_error(exc) from exc
    return DeleteResponse()


@router.get(
    "/projects/{project_id}/status",
    response_model=ProjectStatus,
    responses={404: {"model": ErrorResponse}},
    summary="Aggregate ingestion status of a project",
)
async def project_status(project_id: str, projects: ProjectServiceDep) -> ProjectStatus:
    try:
        return await projects.project_status(project_id)
    except NotFoundError as exc:
        raise _http_error(exc) from exc


@router.post(
    "/projects/{project_id}/query",
    response_model=QueryResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Answer a question from the project's documents",
)
async def query_project(
    project_id: str,
    body: QueryRequest,
    queries: QueryServiceDep,
    settings: SettingsDep,
) -> QueryResponse:
    top_k = body.top_k if body.top_k is not None else settings.default_top_k
    try:
        result = await queries.query(
            project_id,
            body.query or "",
            top_k=top_k,
            model=body.model,
        )
    except _EXPECTED_ERRORS as exc:
        raise _http_error(exc) from exc
    return QueryResponse.from_result(result)


# ---------------------------------------------------------------------------
# File endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/projects/{project_id}/files",
    response_model=list[ProjectFile],
    responses={404: {"model": ErrorResponse}},
    summary="List a project's files",
)
async def list_files(project_id: str, projects: ProjectServiceDep) -> list[ProjectFile]:
    try:
        return await projects.list_files(project_id)
    except NotFoundError as exc:
        raise _http_error(exc) from exc


@router.post(
    "/projects/{project_id}/files",
    response_model=ProjectFile,
    status_code=201,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
    },
    summary="Upload a document and start ingesting it",
)
async def upload_file(
    project_id: str,
    projects: ProjectServiceDep,
    settings: SettingsDep,
    file: Annotated[UploadFile | None, File()] = None,
    model: Annotated[str | None, Form()] = None,
) -> ProjectFile:
    """Accept a multipart upload; ingestion continues in the background."""
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")

    max_bytes = settings.max_upload_mb * 1024 * 1024
    parts: list[bytes] = []
    total_size = 0
    while True:
        part = await file.read(_UPLOAD_CHUNK_SIZE)
        if not part:
            break
        total_size += len(part)
        if total_size > max_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"File too large. Maximum: {settings.max_upload_mb} MB.",
            )
        parts.append(part)
    data = b"".join(parts)

    try:
        return await projects.upload_file(
            project_id,
            file.filename,
            data,
            model=model or None,
            content_type=file.content_type,
        )
    except (NotFoundError, ValidationError) as exc:
        raise _http_error(exc) from exc


@router.delete(
    "/projects/{project_id}/files/{file_id}",
    response_model=DeleteResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Delete a file and its chunks",
)
async def delete_file(project_id: str, file_id: str, projects: ProjectServiceDep) -> DeleteResponse:
    try:
        await projects.delete_file(project_id, file_id)
    except NotFoundError as exc:
        raise _http_error(exc) from exc
    return DeleteResponse()


@router.post(
    "/projects/{project_id}/files/{file_id}/cancel",
    response_model=ProjectFile,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Cancel ingestion of a file",
)
async def cancel_file(project_id: str, file_id: str, projects: ProjectServiceDep) -> ProjectFile:
    try:
        return await projects.cancel_file(project_id, file_id)
    except (NotFoundError, InvalidStateError) as exc:
        raise _http_error(exc) from exc


@router.get(
    "/projects/{project_id}/files/{file_id}/status",
    response_model=ProcessingStatus,
    responses={404: {"model": ErrorResponse}},
    summary="Poll ingestion progress of a file",
)
async def file_status(
    project_id: str, file_id: str, projects: ProjectServiceDep
) -> ProcessingStatus:
    try:
        return await projects.file_status(project_id, file_id)
    except NotFoundError as exc:
        raise _http_error(exc) from exc


# ---------------------------------------------------------------------------
# Health + debug
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse, summary="Application health check")
async def health_check(llm: LLMProviderDep) -> HealthResponse:
    """Report liveness and whether the Ollama server answers."""
    providers: dict[str, Any] = {
        "llm": llm.get_provider_name(),
        "ollama_reachable": await llm.validate_credentials(),
    }
    status = "healthy" if providers["ollama_reachable"] else "degraded"
    return HealthResponse(status=status, version="0.1.0", providers=providers)


@router.get(
    "/debug/processing",
    response_model=ProcessingSnapshotResponse,
    summary="Snapshot of the in-memory progress table",
)
async def processing_snapshot(projects: ProjectServiceDep) -> ProcessingSnapshotResponse:
    return ProcessingSnapshotResponse(files=projects.processing_snapshot())
