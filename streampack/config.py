"""Runtime configuration — env-driven.

Centralized config using pydantic-settings for environment variable
support. Reads from .env file and STREAMPACK_* environment variables.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from streampack.models.pipeline import Compression


class StreampackConfig(BaseSettings):
    """Streampack configuration with environment variable overrides.

    All settings can be overridden via STREAMPACK_* environment variables
    or a .env file in the working directory.

    Examples
    --------
    Override via environment::

        export STREAMPACK_CONCURRENCY=8
        export STREAMPACK_LOG_LEVEL=DEBUG
        export STREAMPACK_COMPRESSION=stored

    Or via .env file::

        STREAMPACK_HTTP_TIMEOUT_SECONDS=60
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="STREAMPACK_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Runtime
    log_level: str = "INFO"
    debug: bool = False

    # Fetch settings
    concurrency: int = Field(default=5, ge=1)
    http_timeout_seconds: float = Field(default=30.0, gt=0)
    user_agent: str = "streampack/0.1"
    chunk_size: int = Field(default=64 * 1024, ge=1)

    # Archive settings
    compression: Compression = Compression.DEFLATED
    compress_level: int | None = None
    force_zip64: bool = False


# Module-level singleton; import as `from streampack.config import config`
config = StreampackConfig()
