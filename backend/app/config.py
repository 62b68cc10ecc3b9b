"""
Service configuration.

All settings have working defaults; environment variables override them.

Environment overrides:
- CLIPMILL_WORK_DIR        working area for request-scoped temp files
- CLIPMILL_FFMPEG_PATH     ffmpeg binary (default: discovered on PATH)
- CLIPMILL_OUTRO_STRATEGY  "two_pass" (default) or "filter_graph"
- CLIPMILL_FFMPEG_TIMEOUT  per-invocation timeout in seconds, 0 = none
- CLIPMILL_CORS_ORIGINS    comma-separated allowed browser origins
- CLIPMILL_LOG_LEVEL       logging level name
- CLIPMILL_HOST / CLIPMILL_PORT  uvicorn bind address
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .execution.models import OutroStrategy


ENV_WORK_DIR = "CLIPMILL_WORK_DIR"
ENV_FFMPEG_PATH = "CLIPMILL_FFMPEG_PATH"
ENV_OUTRO_STRATEGY = "CLIPMILL_OUTRO_STRATEGY"
ENV_FFMPEG_TIMEOUT = "CLIPMILL_FFMPEG_TIMEOUT"
ENV_CORS_ORIGINS = "CLIPMILL_CORS_ORIGINS"
ENV_LOG_LEVEL = "CLIPMILL_LOG_LEVEL"
ENV_HOST = "CLIPMILL_HOST"
ENV_PORT = "CLIPMILL_PORT"

DEFAULT_WORK_DIR = Path(tempfile.gettempdir()) / "clipmill_work"
DEFAULT_CORS_ORIGINS = ["http://localhost:3000"]
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8085


class ServiceSettings(BaseModel):
    """Runtime configuration for the backend service."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    work_dir: Path = DEFAULT_WORK_DIR
    ffmpeg_path: Optional[str] = None
    outro_strategy: OutroStrategy = OutroStrategy.TWO_PASS
    ffmpeg_timeout: float = Field(default=0, ge=0)
    cors_origins: List[str] = Field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    log_level: str = "INFO"
    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, gt=0, lt=65536)

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServiceSettings":
        """
        Build settings from environment variables.

        Unset or empty variables keep their defaults.

        Raises:
            ValueError: a variable is set to an invalid value
        """
        env = os.environ if environ is None else environ
        values = {}

        if env.get(ENV_WORK_DIR):
            values["work_dir"] = Path(env[ENV_WORK_DIR]).expanduser()
        if env.get(ENV_FFMPEG_PATH):
            values["ffmpeg_path"] = env[ENV_FFMPEG_PATH]
        if env.get(ENV_OUTRO_STRATEGY):
            values["outro_strategy"] = env[ENV_OUTRO_STRATEGY].strip().lower()
        if env.get(ENV_FFMPEG_TIMEOUT):
            values["ffmpeg_timeout"] = env[ENV_FFMPEG_TIMEOUT]
        if env.get(ENV_CORS_ORIGINS):
            values["cors_origins"] = [
                origin.strip() for origin in env[ENV_CORS_ORIGINS].split(",") if origin.strip()
            ]
        if env.get(ENV_LOG_LEVEL):
            values["log_level"] = env[ENV_LOG_LEVEL]
        if env.get(ENV_HOST):
            values["host"] = env[ENV_HOST]
        if env.get(ENV_PORT):
            values["port"] = env[ENV_PORT]

        return cls(**values)
