"""SEARCH/REPLACE block parsing and application against known file content."""

from __future__ import annotations

import logging
import re
from typing import Iterator

from ..structured import DiffResult, PatchBlock

SEARCH_START = "<<<<<<< SEARCH"
DIVIDER = "======="
REPLACE_END = ">>>>>>> REPLACE"

DEFAULT_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Generated Website</title>
    <script src="https://cdn.tailwindcss.com"></script>
</head>
<body>
    <div id="root"></div>
    <script type="module" src="/src/main.jsx"></script>
</body>
</html>"""

LOGGER = logging.getLogger(__name__)

_HTML_COMMENT_RE = re.compile(r"<!--[\s\S]*?-->")
_WHITESPACE_RE = re.compile(r"\s+")


def iter_patch_blocks(patch_text: str) -> Iterator[PatchBlock]:
    """Yield well-formed SEARCH/REPLACE blocks in source order.

    Scanning stops at the first block missing its divider or end marker;
    blocks yielded before that point stay valid.
    """
    position = 0
    while True:
        search_start = patch_text.find(SEARCH_START, position)
        if search_start == -1:
            return
        divider = patch_text.find(DIVIDER, search_start)
        if divider == -1:
            return
        replace_end = patch_text.find(REPLACE_END, divider)
        if replace_end == -1:
            return
        yield PatchBlock(
            search_text=patch_text[search_start + len(SEARCH_START) : divider].strip(),
            replace_text=patch_text[divider + len(DIVIDER) : replace_end].strip(),
        )
        position = replace_end + len(REPLACE_END)


def apply_diff_patches(original: str, patch_text: str) -> DiffResult:
    """Apply every SEARCH/REPLACE block in ``patch_text`` to ``original``.

    Blocks run left to right against the progressively modified content. An
    empty search block prepends its replacement; a search text that cannot be
    found is skipped without error.
    """
    modified = original
    touched: list[tuple[int, int]] = []
    has_changes = False

    for index, block in enumerate(iter_patch_blocks(patch_text)):
        replace_line_count = block.replace_text.count("\n") + 1
        if not block.search_text:
            modified = f"{block.replace_text}\n{modified}"
            touched.append((1, replace_line_count))
            has_changes = True
            continue

        position = modified.find(block.search_text)
        if position == -1:
            LOGGER.debug("Patch block %d skipped; search text not found", index)
            continue

        start_line = modified.count("\n", 0, position) + 1
        touched.append((start_line, start_line + replace_line_count - 1))
        modified = modified[:position] + block.replace_text + modified[position + len(block.search_text) :]
        has_changes = True

    return DiffResult(modified_content=modified, touched_line_ranges=touched, has_changes=has_changes)


def has_diff_blocks(content: str) -> bool:
    """Return ``True`` when ``content`` carries all three patch markers."""
    return SEARCH_START in content and DIVIDER in content and REPLACE_END in content


def extract_diff_blocks(content: str) -> str:
    """Return only the marker-delimited lines of ``content``."""
    lines: list[str] = []
    inside = False
    for line in content.split("\n"):
        if SEARCH_START in line:
            inside = True
            lines.append(line)
        elif REPLACE_END in line:
            inside = False
            lines.append(line)
        elif inside:
            lines.append(line)
    return "\n".join(lines)


def normalize_html(html: str) -> str:
    """Strip comments and collapse whitespace for loose HTML comparison."""
    return _WHITESPACE_RE.sub(" ", _HTML_COMMENT_RE.sub("", html)).strip()


def is_default_html(html: str) -> bool:
    """Return ``True`` when ``html`` is the untouched starter page."""
    return normalize_html(DEFAULT_HTML) == normalize_html(html)


__all__ = [
    "DEFAULT_HTML",
    "DIVIDER",
    "REPLACE_END",
    "SEARCH_START",
    "apply_diff_patches",
    "extract_diff_blocks",
    "has_diff_blocks",
    "is_default_html",
    "iter_patch_blocks",
    "normalize_html",
]
