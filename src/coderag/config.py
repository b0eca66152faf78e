"""Application configuration defaults and YAML loading."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from coderag.embedding.encoder import EmbeddingConfig
from coderag.errors import ConfigError

DEFAULT_CONFIG_PATH = Path("config") / "default.yaml"

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


def _get_default_db_path() -> Path:
    """Prefer a local ``data/`` directory, fall back to the user's home."""
    local_db = Path("data/coderag.db")
    if local_db.parent.exists():
        return local_db
    return Path.home() / ".coderag" / "coderag.db"


class StoreConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    db_path: Optional[Path] = None
    index: str = "code_chunks"

    @field_validator("index")
    @classmethod
    def validate_index(cls, value: str) -> str:
        if not re.fullmatch(r"[A-Za-z_][A-Za-z0-9_]*", value):
            raise ValueError("must be a plain identifier")
        return value


class RepoOverride(BaseModel):
    model_config = ConfigDict(extra="forbid")

    microservice: Optional[str] = None
    tags: Optional[List[str]] = None


class RepositoriesConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    root_dir: Path = Path("repos")
    include: List[str] = Field(default_factory=lambda: ["*"])
    exclude: List[str] = Field(default_factory=list)
    overrides: Dict[str, RepoOverride] = Field(default_factory=dict)


class FilesConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    include: List[str] = Field(default_factory=lambda: ["src/**/*"])
    exclude: List[str] = Field(default_factory=lambda: ["**/node_modules/**"])
    respect_gitignore: bool = True


class ChunkingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    max_tokens: int = Field(default=1000, description="Token budget of one chunk")
    overlap_tokens: int = Field(default=100, description="Tokens repeated between split parts")

    @field_validator("max_tokens")
    @classmethod
    def validate_max_tokens(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("overlap_tokens")
    @classmethod
    def validate_overlap_tokens(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must not be negative")
        return value

    @model_validator(mode="after")
    def check_overlap_below_budget(self) -> "ChunkingConfig":
        if self.overlap_tokens >= self.max_tokens:
            raise ValueError("overlap_tokens must be smaller than max_tokens")
        return self


class IngestionSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    embedding_batch_size: int = 50
    index_batch_size: int = 100
    mode: Literal["full", "incremental"] = "full"

    @field_validator("embedding_batch_size", "index_batch_size")
    @classmethod
    def validate_batch_size(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    store: StoreConfig = Field(default_factory=StoreConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    repositories: RepositoriesConfig = Field(default_factory=RepositoriesConfig)
    files: FilesConfig = Field(default_factory=FilesConfig)
    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)

    @model_validator(mode="after")
    def fill_default_db_path(self) -> "AppConfig":
        if self.store.db_path is None:
            self.store.db_path = _get_default_db_path()
        return self

    def resolve_db_path(self, base_dir: Path | None = None) -> Path:
        if self.store.db_path is None:
            self.store.db_path = _get_default_db_path()
        db_path = Path(self.store.db_path).expanduser()
        if db_path.is_absolute() or base_dir is None:
            return db_path
        return base_dir / db_path


def expand_env_vars(value: Any) -> Any:
    """Recursively expand ``${VAR}`` and ``${VAR:-default}`` in string values."""
    if isinstance(value, str):
        return _ENV_PATTERN.sub(_replace_env_var, value)
    if isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    if isinstance(value, dict):
        return {key: expand_env_vars(item) for key, item in value.items()}
    return value


def _replace_env_var(match: re.Match[str]) -> str:
    name, _, default = match.group(1).partition(":-")
    return os.environ.get(name, default)


def _describe(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "config"
        problems.append(f"  - {location}: {error['msg']}")
    return "Invalid configuration:\n" + "\n".join(problems)


def config_from_dict(raw: Dict[str, Any]) -> AppConfig:
    """Build and validate an :class:`AppConfig` from plain data."""
    try:
        return AppConfig.model_validate(expand_env_vars(raw))
    except ValidationError as exc:
        raise ConfigError(_describe(exc)) from exc


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from YAML.

    With no ``path``, ``config/default.yaml`` is used when present and the built-in
    defaults otherwise.
    """
    if path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            return AppConfig()
        path = DEFAULT_CONFIG_PATH

    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Could not parse {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Configuration root in {path} must be a mapping")
    return config_from_dict(raw)
