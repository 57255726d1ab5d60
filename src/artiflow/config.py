"""YAML-backed configuration for building a :class:`~artiflow.workbench.Workbench`."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError

DEFAULT_CONFIG_NAME = "artiflow.yaml"


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class QueueConfig(_Section):
    max_concurrent: int = Field(default=2, ge=1)


class BatcherConfig(_Section):
    delay: float = Field(default=0.5, ge=0)
    max_batch_size: Optional[int] = Field(default=10, ge=1)


class TrackerConfig(_Section):
    max_snapshots: int = Field(default=50, ge=1)


class ExecutorConfig(_Section):
    shell: Optional[str] = "/bin/sh"
    timeout: Optional[float] = Field(default=300.0, gt=0)
    cwd: Optional[Path] = None


class LoggingConfig(_Section):
    level: str = "INFO"


class ArtiflowConfig(_Section):
    """Top-level configuration document."""

    queue: QueueConfig = Field(default_factory=QueueConfig)
    batcher: BatcherConfig = Field(default_factory=BatcherConfig)
    tracker: TrackerConfig = Field(default_factory=TrackerConfig)
    executor: ExecutorConfig = Field(default_factory=ExecutorConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(config_path: Path | None) -> ArtiflowConfig:
    """Load YAML configuration from disk; ``None`` yields the defaults."""
    if config_path is None:
        return ArtiflowConfig()
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}", details={"path": str(config_path)})

    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as error:
        raise ConfigError(f"Failed to parse config: {error}", details={"path": str(config_path)}) from error

    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping at the top level.", details={"path": str(config_path)})

    try:
        return ArtiflowConfig.model_validate(data)
    except ValidationError as error:
        raise ConfigError(
            f"Invalid configuration in {config_path}",
            details={"path": str(config_path), "errors": error.errors(include_url=False)},
        ) from error


def config_to_dict(config: ArtiflowConfig) -> Dict[str, Any]:
    return config.model_dump(mode="json")


def dump_config(config: ArtiflowConfig, config_path: Path) -> None:
    """Write ``config`` as YAML, creating parent directories as needed."""
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(config_to_dict(config), handle, sort_keys=False)


__all__ = [
    "ArtiflowConfig",
    "BatcherConfig",
    "DEFAULT_CONFIG_NAME",
    "ExecutorConfig",
    "LoggingConfig",
    "QueueConfig",
    "TrackerConfig",
    "config_to_dict",
    "dump_config",
    "load_config",
]
