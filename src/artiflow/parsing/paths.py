"""File path normalisation, validity filtering and content-based inference."""

from __future__ import annotations

import re
import time
from typing import Pattern

_HAS_EXTENSION_RE = re.compile(r"\.\w+$")
_VALID_CHARS_RE = re.compile(r"^[/\w\-.]+$")

EXCLUDED_PATH_PATTERNS: tuple[Pattern[str], ...] = (
    re.compile(r"^/?(tmp|temp|test|example)/", re.IGNORECASE),
    re.compile(r"\.(tmp|temp|bak|backup|old|orig)$", re.IGNORECASE),
    re.compile(r"^/?(output|result|response)/", re.IGNORECASE),
    re.compile(r"^/?code_\d+\.(sh|bash|zsh)$", re.IGNORECASE),
    re.compile(r"^/?(untitled|new|demo|sample)\d*\.", re.IGNORECASE),
)

_APP_COMPONENT_RE = re.compile(r"(?:function|const|class)\s+App\b")
_COMPONENT_NAME_RE = re.compile(
    r"(?:export\s+default\s+function|export\s+function|function|class|const)\s+(\w+)"
)
_COMPONENT_EXTENSIONS = {"jsx": ".jsx", "tsx": ".tsx", "ts": ".ts"}


def normalize_file_path(file_path: str) -> str:
    """Clean quoting, separators and leading ``./`` and anchor at ``/``."""
    cleaned = re.sub(r"[`'\"]", "", file_path).strip()
    cleaned = cleaned.replace("\\", "/")
    if cleaned.startswith("./"):
        cleaned = cleaned[2:]
    if not cleaned.startswith("/") and not cleaned.startswith("."):
        cleaned = "/" + cleaned
    return cleaned


def is_valid_file_path(file_path: str | None) -> bool:
    """Return ``True`` for paths that plausibly name a real project file."""
    if not file_path:
        return False
    if not _HAS_EXTENSION_RE.search(file_path):
        return False
    if not _VALID_CHARS_RE.match(file_path):
        return False
    return not any(pattern.search(file_path) for pattern in EXCLUDED_PATH_PATTERNS)


def infer_file_path(content: str, language: str) -> str:
    """Guess a path for a fenced block that arrived without one."""
    language = (language or "").lower()

    if language == "json" and '"name"' in content:
        return "/package.json"
    if language in {"html", "htm"} and "<html" in content:
        return "/index.html"
    if language == "css" and "{" in content:
        return "/styles.css"
    if _APP_COMPONENT_RE.search(content):
        return "/App.jsx"

    if language != "json":
        match = _COMPONENT_NAME_RE.search(content)
        if match:
            extension = _COMPONENT_EXTENSIONS.get(language, ".js")
            return f"/components/{match.group(1)}{extension}"

    return f"/component-{int(time.time() * 1000)}.jsx"


__all__ = [
    "EXCLUDED_PATH_PATTERNS",
    "infer_file_path",
    "is_valid_file_path",
    "normalize_file_path",
]
