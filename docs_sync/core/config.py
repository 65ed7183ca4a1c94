"""Configuration management using Pydantic Settings."""

from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file if it exists
ENV_FILE_OPT: str | None = None

_env_path = Path(".env")
if _env_path.exists():
    load_dotenv(dotenv_path=_env_path)
    ENV_FILE_OPT = str(_env_path)


class Settings(BaseSettings):
    """Sync configuration.

    Loads settings from ``DOCS_SYNC_``-prefixed environment variables. In local
    development these can be provided via a .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCS_SYNC_",
        env_file=ENV_FILE_OPT,
        env_file_encoding="utf-8",
        extra="ignore",
        env_ignore_empty=True,
    )

    # Application
    app_name: str = "Docs Sync"
    log_level: str = Field(default="INFO", description="Logging level")

    # Upstream source
    repo: str = Field(default="ollama/ollama", description="GitHub repository (owner/name)")
    path: str = Field(default="docs", description="Directory inside the repository to sync")
    api_base_url: str = Field(
        default="https://api.github.com", description="Base URL of the GitHub REST API"
    )
    user_agent: str = Field(default="docs-sync", description="User-Agent sent upstream")
    github_token: Optional[SecretStr] = Field(
        default=None, description="Optional GitHub token sent as a Bearer credential"
    )

    # Link rewriting
    route_prefix: str = Field(
        default="/docs/", description="Site route that relative links are rewritten under"
    )
    normalize_paths: bool = Field(
        default=False,
        description="Resolve arbitrary ../ depth instead of stripping a single leading segment",
    )

    # Fetching
    max_concurrent_requests: int = Field(
        default=8, ge=1, description="Maximum entries fetched at the same time"
    )
    request_timeout: Optional[float] = Field(
        default=None, description="Total timeout per HTTP request in seconds (None disables)"
    )
    max_retries: int = Field(default=3, ge=0, description="Retries on throttling responses")
    retry_initial_delay: float = Field(default=1.0, description="Initial retry delay (seconds)")
    retry_backoff_factor: float = Field(default=2.0, description="Backoff factor for retries")
    retry_max_delay: float = Field(default=30.0, description="Upper bound on a retry delay")

    # Run behaviour
    fail_fast: bool = Field(
        default=False, description="Abort the whole run on the first entry failure"
    )
    prune_stale: bool = Field(
        default=True, description="Delete stored records no longer present upstream"
    )
    reuse_unchanged: bool = Field(
        default=False,
        description="Skip the content download when the stored record has the same sha",
    )

    # Content store
    store_backend: Literal["json", "redis", "memory"] = Field(
        default="json", description="Content store backend"
    )
    store_path: str = Field(default="./content", description="Base path for the JSON store")
    collection: str = Field(default="docs", description="Collection name records belong to")
    redis_url: SecretStr = Field(
        default="redis://localhost:6379/0", description="Redis connection URL"
    )


# Global settings instance
settings = Settings()
