"""Application settings loaded from environment variables via pydantic-settings.

Values are read from two sources, in priority order:

  1. Environment variables, e.g. ``OLLAMA_BASE_URL=http://gpu-box:11434``
  2. A ``.env`` file in the project root (local development)

Field ``database_path`` maps to env var ``DATABASE_PATH`` and so on.
Defaults apply when neither source sets a value.  A ``Settings`` instance
is passed explicitly to every component that needs configuration.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Local RAG service settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Inference service (Ollama) ===
    ollama_base_url: str = "http://localhost:11434"
    # Chat model used for chunk summaries and answers when a request names none.
    default_chat_model: str = "llama2"
    # Upper bound for a single chat or embedding request.
    model_timeout_seconds: float = 120.0

    # === Storage ===
    database_path: str = "data/rag.db"
    upload_dir: str = "data/uploads"
    max_upload_mb: int = 50

    # === Ingestion / query ===
    # Terminal progress entries are kept this long for polling clients.
    retention_window_seconds: int = 300
    default_top_k: int = 5

    # === Observability ===
    # Append-only log of every outbound model request.
    request_log_path: str = "logs/llm-requests.log"

    # === App Config ===
    api_prefix: str = "/api"
    cors_origins: list[str] = ["*"]
    app_host: str = "0.0.0.0"
    app_port: int = 3002
    app_env: str = "development"
    log_level: str = "INFO"
