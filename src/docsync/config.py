"""Application settings loaded from YAML with environment variable expansion."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Annotated, Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from docsync.errors import ConfigError

DEFAULT_MAX_SIZE = 1_048_576

# ---------------------------------------------------------------------------
# Settings sections
# ---------------------------------------------------------------------------


class EmbeddingSettings(BaseModel):
    provider: str = "openai"
    model: str = "text-embedding-3-large"
    dimension: int = 3072
    endpoint: str | None = None
    api_key: str | None = None
    timeout: float = 30.0
    max_retries: int = 3
    base_delay: float = 1.0


class CrawlSettings(BaseModel):
    timeout: float = 30.0
    user_agent: str = "docsync/0.1 (+https://github.com)"
    max_pages: int | None = None


class DatabaseParams(BaseModel):
    db_path: str | None = None
    qdrant_url: str | None = None
    qdrant_port: int | None = None
    collection_name: str | None = None
    api_key: str | None = None


class DatabaseConfig(BaseModel):
    type: Literal["sqlite", "qdrant"] = "sqlite"
    params: DatabaseParams = Field(default_factory=DatabaseParams)


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


class _BaseSource(BaseModel):
    product_name: str
    version: str
    max_size: int = DEFAULT_MAX_SIZE
    database_config: DatabaseConfig = Field(default_factory=DatabaseConfig)

    @property
    def label(self) -> str:
        return f"{self.type}:{self.product_name}@{self.version}"


class WebsiteSource(_BaseSource):
    type: Literal["website"] = "website"
    url: str
    sitemap_url: str | None = None


class GithubSource(_BaseSource):
    type: Literal["github"] = "github"
    repo: str
    start_date: str = "2025-01-01"
    token: str | None = None


class LocalDirectorySource(_BaseSource):
    type: Literal["local_directory"] = "local_directory"
    path: str
    include_extensions: list[str] = Field(
        default_factory=lambda: [".md", ".txt", ".html", ".htm", ".pdf"]
    )
    exclude_extensions: list[str] = Field(default_factory=list)
    recursive: bool = True
    encoding: str = "utf-8"
    url_rewrite_prefix: str | None = None


class CodeSource(_BaseSource):
    type: Literal["code"] = "code"
    source: Literal["local_directory", "github"] = "local_directory"
    path: str | None = None
    repo: str | None = None
    branch: str | None = None
    include_extensions: list[str] | None = None
    exclude_extensions: list[str] = Field(default_factory=list)
    recursive: bool = True
    encoding: str = "utf-8"
    url_rewrite_prefix: str | None = None
    clone_dir: str = ".docsync/repos"
    chunk_size: int = 512
    token: str | None = None

    @model_validator(mode="after")
    def _check_location(self) -> CodeSource:
        if self.source == "local_directory" and not self.path:
            raise ValueError("code source with source=local_directory requires 'path'")
        if self.source == "github" and not self.repo:
            raise ValueError("code source with source=github requires 'repo'")
        return self


SourceConfig = Annotated[
    WebsiteSource | GithubSource | LocalDirectorySource | CodeSource,
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseModel):
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    crawl: CrawlSettings = Field(default_factory=CrawlSettings)
    sources: list[SourceConfig] = Field(default_factory=list)


_ENV_REF = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def _expand_env(value: Any) -> Any:
    """Replace ``${VAR}`` references in string values with environment values."""
    if isinstance(value, str):
        return _ENV_REF.sub(lambda m: os.getenv(m.group(1), ""), value)
    if isinstance(value, list):
        return [_expand_env(v) for v in value]
    if isinstance(value, dict):
        return {k: _expand_env(v) for k, v in value.items()}
    return value


def _find_settings_file() -> Path | None:
    """Walk up from cwd looking for docsync.yaml."""
    profile = os.getenv("DOCSYNC_PROFILE", "")
    names = [f"docsync-{profile}.yaml", "docsync.yaml"] if profile else ["docsync.yaml"]

    cwd = Path.cwd()
    for parent in [cwd, *cwd.parents]:
        for name in names:
            candidate = parent / name
            if candidate.exists():
                return candidate
    return None


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file.

    Args:
        path: Explicit config path. When omitted, the nearest
            ``docsync.yaml`` is used, falling back to defaults.

    Raises:
        ConfigError: If the file is missing, unparseable or invalid.
    """
    if path is None:
        path = _find_settings_file()
        if path is None:
            return Settings()

    path = Path(path)
    try:
        with open(path, encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to read config file {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    try:
        return Settings(**_expand_env(raw))
    except ValidationError as exc:
        raise ConfigError(f"Invalid config in {path}:\n{exc}") from exc
