"""Configuration management for NoteDB projects."""

import os
from pathlib import Path
from typing import Optional, Dict, Any
import toml
from pydantic import BaseModel, Field, ConfigDict, field_validator


class ProjectConfig(BaseModel):
    """Configuration for a NoteDB project stored in .notedb/config.toml."""

    model_config = ConfigDict(
        extra="allow"
    )  # Allow additional fields for extensibility

    database_path: str = Field(
        default="notes.db",
        description="Database file, relative to the project directory",
    )
    default_page_size: int = Field(
        default=100, ge=1, description="Rows per page when none is given"
    )
    max_page_size: int = Field(
        default=1000, ge=1, description="Largest page size a read accepts"
    )
    log_level: str = Field(default="WARNING", description="Root log level for the CLI")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.upper()


class Config:
    """Manages NoteDB project configuration."""

    def __init__(self, project_dir: Optional[Path] = None):
        """Initialize config manager.

        Args:
            project_dir: Path to project directory. If None, uses NOTEDB_PROJECT_DIR env var or current directory.
        """
        if project_dir is None:
            env_dir = os.environ.get("NOTEDB_PROJECT_DIR")
            if env_dir:
                project_dir = Path(env_dir)

        self.project_dir = Path(project_dir) if project_dir else Path.cwd()
        self.config_dir = self.project_dir / ".notedb"
        self.config_path = self.config_dir / "config.toml"
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
        if env_path := os.environ.get("NOTEDB_DATABASE_PATH"):
            data["database_path"] = env_path

        if env_page_size := os.environ.get("NOTEDB_PAGE_SIZE"):
            data["default_page_size"] = int(env_page_size)

        if env_max_page_size := os.environ.get("NOTEDB_MAX_PAGE_SIZE"):
            data["max_page_size"] = int(env_max_page_size)

        if env_level := os.environ.get("NOTEDB_LOG_LEVEL"):
            data["log_level"] = env_level

    @property
    def database_path(self) -> Path:
        """Absolute path of the configured database file."""
        config = self._config or self.load()
        path = Path(config.database_path)
        return path if path.is_absolute() else self.project_dir / path

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

        with open(self.config_path, "w") as f:
            toml.dump(self._config.model_dump(), f)

    def init_project(self, database_path: str = "notes.db") -> ProjectConfig:
        """Initialize a new NoteDB project with default configuration.

        Raises:
            FileExistsError: If a project already exists in the directory
        """
        from notedb.core.storage import initialize_database

        if self.exists:
            raise FileExistsError(f"Project already exists at {self.config_dir}")

        config = ProjectConfig(database_path=database_path)
        self.save(config)
        initialize_database(self.database_path)
        return config
