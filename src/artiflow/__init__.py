"""Streaming artifact extraction and SEARCH/REPLACE patch application."""

from .config import ArtiflowConfig, load_config
from .errors import ArtiflowError, CommandExecutionError, ConfigError, LockedPathError
from .workbench import Workbench

__version__ = "0.1.0"

__all__ = [
    "ArtiflowConfig",
    "ArtiflowError",
    "CommandExecutionError",
    "ConfigError",
    "LockedPathError",
    "Workbench",
    "load_config",
]
