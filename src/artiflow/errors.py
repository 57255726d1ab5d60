"""Exception types raised at the few boundaries where artiflow does raise."""

from __future__ import annotations

from typing import Any, Mapping


class ArtiflowError(RuntimeError):
    """Base error carrying an optional structured ``details`` payload."""

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = dict(details or {})


class ConfigError(ArtiflowError):
    """Raised when a configuration file cannot be loaded or validated."""


class LockedPathError(ArtiflowError):
    """Raised by strict admission checks when a target path is locked."""


class CommandExecutionError(ArtiflowError):
    """Raised by executors when a shell command exits unsuccessfully."""


__all__ = ["ArtiflowError", "CommandExecutionError", "ConfigError", "LockedPathError"]
