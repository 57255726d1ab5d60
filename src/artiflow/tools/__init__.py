"""Patch engine, scheduling, batching, file state and bookkeeping tools."""

from .batcher import DebouncedBatcher, PendingStats
from .command_queue import CommandQueue, ShellExecutor, infer_command_kind
from .diff_patch import apply_diff_patches, extract_diff_blocks, has_diff_blocks, iter_patch_blocks
from .diff_tracker import ChangeStats, DiffTracker, FileDiff
from .file_store import FileEntry, FileStore, FolderEntry, LockStatus
from .perf import PerformanceTracker
from .validator import FileValidator, ValidationResult

__all__ = [
    "ChangeStats",
    "CommandQueue",
    "DebouncedBatcher",
    "DiffTracker",
    "FileDiff",
    "FileEntry",
    "FileStore",
    "FileValidator",
    "FolderEntry",
    "LockStatus",
    "PendingStats",
    "PerformanceTracker",
    "ShellExecutor",
    "ValidationResult",
    "apply_diff_patches",
    "extract_diff_blocks",
    "has_diff_blocks",
    "infer_command_kind",
    "iter_patch_blocks",
]
