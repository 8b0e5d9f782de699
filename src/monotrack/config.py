"""Configuration management for monotrack workspaces."""

import os
from pathlib import Path
from typing import List, Literal, Optional, Dict, Any
import toml
from pydantic import BaseModel, Field, ConfigDict, field_validator

from monotrack.core.path_utils import get_config_dir, get_config_path

StoreBackend = Literal["file", "sqlite", "memory"]

LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class GitConfig(BaseModel):
    """Git identity used as the author of detected changes."""

    user_name: Optional[str] = Field(
        default=None, description="Author recorded on detected changes"
    )
    user_email: Optional[str] = Field(default=None, description="Author email")


class StoreConfig(BaseModel):
    """Where and how changesets are persisted."""

    backend: StoreBackend = Field(default="file", description="Store backend")
    path: str = Field(
        default=".changes",
        description="Changeset directory (file) or database file (sqlite), relative to root",
    )


class ProjectConfig(BaseModel):
    """Configuration for a workspace stored in .monotrack/config.toml."""

    model_config = ConfigDict(
        extra="allow"
    )  # Allow additional fields for extensibility

    packages: List[str] = Field(
        default_factory=lambda: ["packages/*"],
        description="Glob patterns locating package directories",
    )
    log_level: str = Field(default="INFO", description="Level of the monotrack logger")
    git: GitConfig = Field(default_factory=GitConfig, description="Git identity")
    store: StoreConfig = Field(default_factory=StoreConfig, description="Change store")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in LOG_LEVELS:
            raise ValueError(
                "log_level must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized


class Config:
    """Manages monotrack workspace configuration."""

    def __init__(self, workspace_dir: Optional[Path] = None):
        """Initialize config manager.

        Args:
            workspace_dir: Path to workspace root. If None, uses MONOTRACK_WORKSPACE_DIR env var or current directory.
        """
        if workspace_dir is None:
            env_dir = os.environ.get("MONOTRACK_WORKSPACE_DIR")
            if env_dir:
                workspace_dir = Path(env_dir)

        self.workspace_dir = Path(workspace_dir) if workspace_dir else Path.cwd()
        self.config_dir = get_config_dir(self.workspace_dir)
        self.config_path = get_config_path(self.workspace_dir)
        self._config: Optional[ProjectConfig] = None

    @property
    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()

    def load(self) -> ProjectConfig:
        """Load configuration from disk, with environment variable overrides."""
        if not self.exists:
            raise FileNotFoundError(f"Config file not found at {self.config_path}")

        with open(self.config_path, "r") as f:
            data = toml.load(f)

        self._apply_env_overrides(data)

        self._config = ProjectConfig(**data)
        return self._config

    def _apply_env_overrides(self, data: Dict[str, Any]) -> None:
        """Apply environment variable overrides to configuration data."""
        if env_name := os.environ.get("MONOTRACK_GIT_USER_NAME"):
            data.setdefault("git", {})["user_name"] = env_name

        if env_email := os.environ.get("MONOTRACK_GIT_USER_EMAIL"):
            data.setdefault("git", {})["user_email"] = env_email

        if env_backend := os.environ.get("MONOTRACK_STORE_BACKEND"):
            data.setdefault("store", {})["backend"] = env_backend

        if env_level := os.environ.get("MONOTRACK_LOG_LEVEL"):
            data["log_level"] = env_level

    def save(self, config: Optional[ProjectConfig] = None) -> None:
        """Save configuration to disk.

        Args:
            config: Configuration to save. If None, saves current config.
        """
        if config:
            self._config = config

        if not self._config:
            raise ValueError("No configuration to save")

        self.config_dir.mkdir(parents=True, exist_ok=True)

        # toml cannot represent None, drop unset values
        config_dict = self._config.model_dump(exclude_none=True)

        with open(self.config_path, "w") as f:
            toml.dump(config_dict, f)

    def init_workspace(self, **kwargs) -> ProjectConfig:
        """Initialize a new monotrack workspace with default configuration.

        This delegates to the WorkspaceInitializer for the actual
        initialization logic.
        """
        from monotrack.core.initializer import WorkspaceInitializer

        initializer = WorkspaceInitializer(self.workspace_dir)
        config = initializer.init_workspace(**kwargs)

        self._config = config
        return config
