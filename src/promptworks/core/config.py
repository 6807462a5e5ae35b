"""Configuration management for Promptworks.

Configuration is loaded with Pydantic Settings from environment variables
with the ``PROMPTWORKS_`` prefix, then a ``.env`` file, then the defaults
defined in :class:`PromptworksConfig`.

Example .env file::

    PROMPTWORKS_CATALOG_PATH=data/catalog.json
    PROMPTWORKS_SERVER_PORT=8080
    PROMPTWORKS_LOG_LEVEL=DEBUG

Usage
-----
::

    from promptworks.core.config import config

    print(config.server_port)

The compiler itself never reads configuration: it is a pure function of its
request and records.  Only the API layer consults ``config``.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PromptworksConfig(BaseSettings):
    """Main configuration for the Promptworks API.

    Attributes
    ----------
    catalog_path : Path | None
        JSON catalog of profiles, blueprints, blocks, filters and LoRA
        versions.  ``None`` uses the catalog bundled with the package.
    server_host : str
        Bind address for the uvicorn server.
    server_port : int
        Port for the uvicorn server (1024-65535).
    log_level : str
        Root logging level for the API process.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PROMPTWORKS_",
        case_sensitive=False,
    )

    catalog_path: Path | None = Field(
        default=None,
        description="Catalog JSON file (None = packaged defaults)",
    )

    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    server_port: int = Field(
        default=7860,
        description="Server port",
        ge=1024,
        le=65535,
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level for the API process",
    )


# Global configuration instance, loaded once at import time.
config = PromptworksConfig()
