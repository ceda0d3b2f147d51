"""
Configuration module for refgraph.

Provides strongly-typed configuration with pydantic, supporting both
file-based and environment variable configuration.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from refgraph.errors import ConfigurationError


class SourceConfig(BaseModel):
    """Source discovery configuration."""

    source_directory: Path | None = Field(
        default=None,
        description="Source root relative to project_root (None: read from pom.xml)",
    )
    prefer_delombok: bool = Field(
        default=True,
        description="Use target/delombok as source root when it exists",
    )
    exclude_dirs: list[str] = Field(
        default_factory=lambda: [
            ".git",
            ".idea",
            "node_modules",
            "build",
            "out",
        ],
        description="Directory names skipped during discovery",
    )


class DependencyConfig(BaseModel):
    """Dependency archive lookup configuration."""

    local_repository: Path = Field(
        default_factory=lambda: Path.home() / ".m2" / "repository",
        description="Local Maven repository holding dependency archives",
    )
    include_test_scope: bool = Field(
        default=False,
        description="Also resolve against test-scoped dependencies",
    )


class ExtractionConfig(BaseModel):
    """Extraction engine configuration."""

    max_workers: int = Field(
        default=1,
        ge=1,
        le=64,
        description="Worker threads per pass (1 runs sequentially)",
    )


class ReportConfig(BaseModel):
    """Report output configuration."""

    output_dir: Path = Field(
        default=Path("."),
        description="Directory receiving the reports (relative to project_root)",
    )
    method_report_name: str = Field(
        default="method-references.txt",
        description="File name of the method/constructor reference report",
    )
    type_report_name: str = Field(
        default="class-references.txt",
        description="File name of the class/type reference report",
    )


class GraphConfig(BaseModel):
    """Graph store configuration."""

    enabled: bool = Field(
        default=False,
        description="Project callable references into the graph store",
    )
    db_path: Path = Field(
        default=Path(".refgraph/graph.db"),
        description="Path to the SQLite graph database (relative to project_root)",
    )
    wal_mode: bool = Field(
        default=True,
        description="Enable WAL mode for concurrent reads",
    )
    seed_declarations: bool = Field(
        default=True,
        description="Register callable spans found in pass 1 before projecting",
    )


class Config(BaseSettings):
    """
    Main refgraph configuration.

    Can be configured via:
    1. Configuration file (refgraph.toml or refgraph.yaml)
    2. Environment variables with REFGRAPH_ prefix
    3. Programmatic overrides
    """

    model_config = SettingsConfigDict(
        env_prefix="REFGRAPH_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    project_root: Path = Field(
        default_factory=lambda: Path.cwd(),
        description="Project root directory",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    source: SourceConfig = Field(default_factory=SourceConfig)
    dependencies: DependencyConfig = Field(default_factory=DependencyConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    reports: ReportConfig = Field(default_factory=ReportConfig)
    graph: GraphConfig = Field(default_factory=GraphConfig)

    @field_validator("project_root", mode="before")
    @classmethod
    def resolve_project_root(cls, v: Path | str) -> Path:
        """Resolve project root to absolute path."""
        path = Path(v) if isinstance(v, str) else v
        return path.resolve()

    def _absolute(self, path: Path) -> Path:
        if path.is_absolute():
            return path
        return self.project_root / path

    @property
    def output_dir(self) -> Path:
        """Get absolute path to the report directory."""
        return self._absolute(self.reports.output_dir)

    @property
    def method_report_path(self) -> Path:
        return self.output_dir / self.reports.method_report_name

    @property
    def type_report_path(self) -> Path:
        return self.output_dir / self.reports.type_report_name

    @property
    def graph_db_path(self) -> Path:
        """Get absolute path to the graph database."""
        return self._absolute(self.graph.db_path)

    @classmethod
    def from_file(cls, path: Path) -> "Config":
        """Load configuration from a TOML, YAML or JSON file."""
        import json

        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {path}")

        suffix = path.suffix.lower()
        content = path.read_text()

        if suffix == ".toml":
            import tomllib

            try:
                data = tomllib.loads(content)
            except tomllib.TOMLDecodeError as e:
                raise ConfigurationError(f"Cannot parse {path}: {e}") from e
        elif suffix in (".yaml", ".yml"):
            import yaml

            try:
                data = yaml.safe_load(content) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Cannot parse {path}: {e}") from e
        elif suffix == ".json":
            try:
                data = json.loads(content)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Cannot parse {path}: {e}") from e
        else:
            raise ConfigurationError(f"Unsupported config format: {suffix}")

        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file must hold a mapping: {path}")

        # a relative project_root is taken from the file's directory
        root = data.get("project_root")
        if root is not None and not Path(root).is_absolute():
            data["project_root"] = path.parent / root

        return cls(**data)

    def to_dict(self) -> dict:
        """Convert configuration to dictionary."""
        return self.model_dump()


def load_config(
    config_path: Path | None = None,
    project_root: Path | None = None,
) -> Config:
    """
    Load configuration with automatic discovery.

    Priority:
    1. Explicit config_path if provided
    2. refgraph.toml in project_root
    3. .refgraph/config.toml in project_root
    4. refgraph.yaml in project_root
    5. Default configuration

    An explicit ``project_root`` wins over the one in a config file; a file
    that names none gets the discovery root.
    """
    root = project_root or Path.cwd()

    if config_path is not None:
        return _with_root(Config.from_file(config_path), project_root, root)

    candidates = [
        root / "refgraph.toml",
        root / ".refgraph" / "config.toml",
        root / "refgraph.yaml",
        root / ".refgraph" / "config.yaml",
    ]

    for candidate in candidates:
        if candidate.exists():
            return _with_root(Config.from_file(candidate), project_root, root)

    return Config(project_root=root)


def _with_root(config: Config, explicit: Path | None, fallback: Path) -> Config:
    if explicit is None and "project_root" in config.model_fields_set:
        return config
    return config.model_copy(update={"project_root": (explicit or fallback).resolve()})
