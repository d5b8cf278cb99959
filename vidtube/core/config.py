"""Application settings, read from the environment and the project ``.env``.

Importing this module also sets the root log level from ``LOG_LEVEL`` so that
every ``logging.getLogger(__name__)`` in the package inherits it.
"""

import logging
import os
import pathlib

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from vidtube.version import __version__ as app_version

_LOG_LEVEL = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)

# pytest and uvicorn install their own root handlers; only adjust the level then
if logging.getLogger().hasHandlers():
    logging.getLogger().setLevel(_LOG_LEVEL)
else:  # pragma: no cover
    logging.basicConfig(level=_LOG_LEVEL, format="%(levelname)s:%(name)s:%(message)s")

_ENV_FILE = pathlib.Path(__file__).resolve().parents[2] / ".env"
if not _ENV_FILE.is_file():
    _ENV_FILE = pathlib.Path(".env")
logging.debug("Settings env file: %s", _ENV_FILE)

# Flags that are commonly written as ``FLAG=false  # comment`` in .env files
_BOOL_FLAGS = (
    "ASTRA_DB_AUTO_CREATE_COLLECTIONS",
    "COOKIE_SECURE",
    "OBSERVABILITY_ENABLED",
    "OTEL_TRACES_ENABLED",
    "OTEL_METRICS_ENABLED",
    "LOKI_ENABLED",
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "VidTube Python FastAPI Backend"
    API_V1_STR: str = "/api/v1"
    APP_VERSION: str = app_version
    ENVIRONMENT: str = "dev"

    # The defaults below only make the app importable without a .env
    ASTRA_DB_API_ENDPOINT: str = "http://localhost:8080/api"
    ASTRA_DB_APPLICATION_TOKEN: str = "test-token"
    ASTRA_DB_KEYSPACE: str = "test_keyspace"
    ASTRA_DB_AUTO_CREATE_COLLECTIONS: bool = False

    SECRET_KEY: str = "unit-test-secret"
    REFRESH_SECRET_KEY: str = "unit-test-refresh-secret"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 10
    COOKIE_SECURE: bool = False

    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100
    SEARCH_SCAN_LIMIT: int = Field(
        default=1000,
        ge=1,
        description="Videos scanned per text search; matches are filtered and paged in memory.",
    )
    # Data API count_documents rejects bounds above 1000
    COUNT_UPPER_BOUND: int = Field(default=1000, ge=1, le=1000)

    CORS_ALLOW_ORIGINS: str = Field(
        default="*", description='Comma-separated origins, or "*" for any.'
    )

    CLOUDINARY_CLOUD_NAME: str = "test-cloud"
    CLOUDINARY_API_KEY: str = "test-api-key"
    CLOUDINARY_API_SECRET: str = "test-api-secret"
    CLOUDINARY_FOLDER: str | None = "vidtube"
    CLOUDINARY_API_BASE_URL: str = "https://api.cloudinary.com/v1_1"
    MEDIA_UPLOAD_TIMEOUT: float = Field(default=120.0, ge=1.0)
    MAX_VIDEO_UPLOAD_MB: int = Field(default=500, ge=1)
    MAX_IMAGE_UPLOAD_MB: int = Field(default=10, ge=1)

    OBSERVABILITY_ENABLED: bool = Field(
        default=True,
        description="When false neither tracing nor log shipping is set up; /metrics stays on.",
    )
    OTEL_EXPORTER_OTLP_ENDPOINT: str | None = None
    OTEL_EXPORTER_OTLP_PROTOCOL: str = Field(default="grpc", description='"grpc" or "http".')
    OTEL_EXPORTER_OTLP_HEADERS: str | None = Field(
        default=None, description="key=value pairs separated by commas."
    )
    OTEL_TRACES_ENABLED: bool = True
    OTEL_METRICS_ENABLED: bool = False
    OTEL_TRACES_SAMPLER_RATIO: float = Field(default=1.0, ge=0.0, le=1.0)

    LOKI_ENABLED: bool = False
    LOKI_ENDPOINT: str | None = Field(
        default=None, description="Loki push URL, e.g. http://loki:3100/loki/api/v1/push."
    )
    LOKI_EXTRA_LABELS: str | None = None
    LOG_DIR: str = "logs"

    @model_validator(mode="before")
    @classmethod
    def _sanitize_bool_tokens(cls, data):
        if not isinstance(data, dict):
            return data
        for key in _BOOL_FLAGS:
            value = data.get(key)
            if isinstance(value, str):
                tokens = value.split("#", 1)[0].split()
                if tokens:
                    data[key] = tokens[0]
        return data

    @property
    def parsed_cors_origins(self) -> list[str]:
        if self.CORS_ALLOW_ORIGINS.strip() == "*":
            return ["*"]
        # Browsers send origins without a trailing slash
        return [
            origin.strip().rstrip("/")
            for origin in self.CORS_ALLOW_ORIGINS.split(",")
            if origin.strip()
        ]


settings = Settings()
