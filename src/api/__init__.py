"""HTTP surface of the service: the project router, request/response schemas
and the middleware stack.
"""

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import router
from src.api.schemas import (
    CreateProjectRequest,
    DeleteResponse,
    ErrorResponse,
    HealthResponse,
    ProcessingSnapshotResponse,
    QueryRequest,
    QueryResponse,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
    "CreateProjectRequest",
    "DeleteResponse",
    "ErrorResponse",
    "HealthResponse",
    "ProcessingSnapshotResponse",
    "QueryRequest",
    "QueryResponse",
]
