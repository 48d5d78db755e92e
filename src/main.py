"""ASGI application for the local RAG service.

``create_app`` builds the FastAPI app; the lifespan constructs every
component from ``Settings`` plus ``config/config.yaml`` and parks it on
``app.state`` where the route dependencies find it.

On startup the SQLite schema is created or upgraded and any file left
``processing`` by a previous run is marked failed; on shutdown running
ingestion jobs are cancelled and awaited.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import router as api_router
from src.config.loader import load_config
from src.config.settings import Settings
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.llm_provider import ILLMProvider
from src.pipeline.ingestion_queue import IngestionQueue
from src.providers.embedding.ollama_embedding_provider import OllamaEmbeddingProvider
from src.providers.llm.ollama_provider import OllamaLLMProvider
from src.providers.progress.memory_progress_store import MemoryProgressStore
from src.providers.request_log.file_request_log import FileRequestLog
from src.providers.store.sqlite_project_store import SQLiteProjectStore
from src.services.ingestion.ingestion_service import IngestionService
from src.services.project_service import ProjectService
from src.services.query_service import QueryService
from src.utils.logging import configure_logging, get_logger

settings = Settings()

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# -- wiring --


def _build_all(
    app_settings: Settings,
    llm_provider: ILLMProvider | None = None,
    embedding_provider: IEmbeddingProvider | None = None,
) -> dict[str, Any]:
    """Return the named components that end up as ``app.state`` attributes.

    ``llm_provider`` and ``embedding_provider`` stand in for the Ollama
    adapters when given.
    """
    config = load_config(settings=app_settings)
    ingestion_cfg = config.get("ingestion", {})
    query_cfg = config.get("query", {})

    request_log = FileRequestLog(app_settings.request_log_path)

    llm = llm_provider or OllamaLLMProvider(app_settings, request_log=request_log)
    embedder = embedding_provider or OllamaEmbeddingProvider(
        app_settings, request_log=request_log
    )

    store = SQLiteProjectStore(db_path=app_settings.database_path)
    progress = MemoryProgressStore(retention_seconds=app_settings.retention_window_seconds)
    queue = IngestionQueue()

    ingestion_service = IngestionService(
        store=store,
        progress=progress,
        llm_provider=llm,
        embedding_provider=embedder,
        queue=queue,
        summary_temperature=ingestion_cfg.get("summary_temperature", 0.2),
        summary_max_tokens=ingestion_cfg.get("summary_max_tokens", 200),
    )
    project_service = ProjectService(
        store=store,
        progress=progress,
        ingestion=ingestion_service,
        upload_dir=app_settings.upload_dir,
        default_model=app_settings.default_chat_model,
    )
    query_service = QueryService(
        store=store,
        embedding_provider=embedder,
        llm=llm,
        default_model=app_settings.default_chat_model,
        answer_temperature=query_cfg.get("answer_temperature", 0.3),
        answer_max_tokens=query_cfg.get("answer_max_tokens", 1024),
    )

    return {
        "settings": app_settings,
        "request_log": request_log,
        "llm_provider": llm,
        "embedding_provider": embedder,
        "project_store": store,
        "progress_store": progress,
        "ingestion_queue": queue,
        "ingestion_service": ingestion_service,
        "project_service": project_service,
        "query_service": query_service,
    }


# -- lifespan --


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    app_settings: Settings = application.state.settings
    components = _build_all(
        app_settings,
        llm_provider=getattr(application.state, "llm_override", None),
        embedding_provider=getattr(application.state, "embedding_override", None),
    )

    for key, value in components.items():
        setattr(application.state, key, value)

    await components["project_store"].initialize()
    Path(app_settings.upload_dir).mkdir(parents=True, exist_ok=True)
    recovered = await components["ingestion_service"].recover_interrupted(
        Path(app_settings.upload_dir)
    )

    _logger.info(
        "app_startup",
        version="0.1.0",
        environment=app_settings.app_env,
        database=app_settings.database_path,
        ollama=app_settings.ollama_base_url,
        recovered_files=len(recovered),
    )

    yield

    await components["ingestion_queue"].shutdown()
    components["request_log"].close()
    _logger.info("app_shutdown")


# -- factory --


def create_app(
    app_settings: Settings | None = None,
    *,
    llm_provider: ILLMProvider | None = None,
    embedding_provider: IEmbeddingProvider | None = None,
) -> FastAPI:
    """Return a configured app; without arguments it uses the module settings."""
    app_settings = app_settings or settings
    application = FastAPI(
        title="Local RAG API",
        version="0.1.0",
        description=(
            "Build per-project document indexes from PDF, EPUB and text uploads "
            "and answer questions over them with a locally hosted Ollama model."
        ),
        lifespan=_lifespan,
    )
    application.state.settings = app_settings
    application.state.llm_override = llm_provider
    application.state.embedding_override = embedding_provider

    # Added innermost first; see src/api/middleware.py.
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application, allowed_origins=app_settings.cors_origins)

    application.include_router(api_router, prefix=app_settings.api_prefix)

    return application


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
