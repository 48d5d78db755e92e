"""Model request log implementations."""

from src.providers.request_log.file_request_log import FileRequestLog

__all__ = ["FileRequestLog"]
