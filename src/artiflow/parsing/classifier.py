"""Heuristic extraction of file and command blocks from markdown replies."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Pattern

from ..structured import BlockKind, ContentBlock
from ..utils.hashing import content_hash
from .paths import infer_file_path, is_valid_file_path, normalize_file_path
from .shell import is_shell_command

LOGGER = logging.getLogger(__name__)

_PATH = r"[/\w\-.]+\.\w+"
_QUOTES = r"[`'\"]*"


@dataclass(frozen=True, slots=True)
class BlockPattern:
    """Named regex that locates a fenced block together with its path."""

    name: str
    regex: Pattern[str]


# Each pattern captures (path, language, content) except where noted in
# ``_extract``; all patterns run independently and may overlap.
BLOCK_PATTERNS: tuple[BlockPattern, ...] = (
    BlockPattern(
        "file_path",
        re.compile(rf"(?:^|\n)({_PATH}):?\s*\n+```(\w*)\n([\s\S]*?)```", re.IGNORECASE | re.MULTILINE),
    ),
    BlockPattern(
        "explicit_create",
        re.compile(
            r"\b(?:create|update|modify|edit|write|add|generate|here'?s?|file:?)\s+"
            r"(?:a\s+)?(?:new\s+)?(?:file\s+)?(?:called\s+)?"
            rf"{_QUOTES}({_PATH}){_QUOTES}:?\s*\n+```(\w*)\n([\s\S]*?)```",
            re.IGNORECASE,
        ),
    ),
    BlockPattern(
        "comment_filename",
        re.compile(
            rf"```(\w*)\n(?://|#|<!--)\s*(?:(?:file|filename|path)\s*:?\s*)?({_PATH}).*?\n([\s\S]*?)```",
            re.IGNORECASE,
        ),
    ),
    BlockPattern(
        "in_filename",
        re.compile(
            rf"\b(?:in|for|update)\s+{_QUOTES}({_PATH}){_QUOTES}:?\s*\n+```(\w*)\n([\s\S]*?)```",
            re.IGNORECASE,
        ),
    ),
    BlockPattern(
        "structured_file",
        re.compile(
            r"```(json|jsx?|tsx?|html?|vue|svelte)\n"
            r"(\{[\s\S]*?\"(?:name|version|scripts|dependencies|devDependencies)\"[\s\S]*?\}"
            r"|<\w+[^>]*>[\s\S]*?</\w+>[\s\S]*?)\s*```",
            re.IGNORECASE,
        ),
    ),
)

FILE_OPERATION_PATTERN = re.compile(
    r"\b(?:create|write|save|generate)\s+(?:a\s+)?(?:new\s+)?file\s+(?:at\s+)?"
    rf"{_QUOTES}({_PATH}){_QUOTES}\s+with\s+(?:the\s+)?(?:following\s+)?content:?\s*\n"
    r"([\s\S]+?)(?=\n\n|\n(?:create|write|save|generate|now|next|then|finally)|\Z)",
    re.IGNORECASE,
)


@dataclass(frozen=True, slots=True)
class DetectedBlock:
    """Raw regex hit before classification."""

    match: str
    pattern: str
    file_path: str | None
    language: str
    content: str


def _extract(pattern: BlockPattern, match: re.Match[str]) -> DetectedBlock:
    if pattern.name == "comment_filename":
        language, raw_path, content = match.group(1), match.group(2), match.group(3)
        file_path = normalize_file_path(raw_path)
    elif pattern.name == "structured_file":
        language, content = match.group(1).lower(), match.group(2)
        file_path = infer_file_path(content, language)
    else:
        raw_path, language, content = match.group(1), match.group(2), match.group(3)
        file_path = normalize_file_path(raw_path)
    return DetectedBlock(
        match=match.group(0),
        pattern=pattern.name,
        file_path=file_path,
        language=language or "",
        content=content,
    )


def detect_code_blocks(text: str) -> list[DetectedBlock]:
    """Run every block pattern over ``text`` in table order."""
    blocks: list[DetectedBlock] = []
    for pattern in BLOCK_PATTERNS:
        for match in pattern.regex.finditer(text):
            blocks.append(_extract(pattern, match))
    return blocks


def detect_file_operations(text: str) -> list[DetectedBlock]:
    """Find prose file-creation instructions that carry no fenced block."""
    return [
        DetectedBlock(
            match=match.group(0),
            pattern="file_operation",
            file_path=normalize_file_path(match.group(1)),
            language="",
            content=match.group(2).strip(),
        )
        for match in FILE_OPERATION_PATTERN.finditer(text)
    ]


def classify_block(block: DetectedBlock, message_id: str, block_hash: str) -> ContentBlock | None:
    """Turn a detected block into a command, a file, or nothing."""
    if block.pattern != "file_operation" and is_shell_command(block.content, block.language):
        LOGGER.debug("Detected shell command: %s", block.content[:100])
        return ContentBlock(
            kind=BlockKind.COMMAND,
            payload=block.content.strip(),
            id=f"command-{message_id}-{block_hash}",
            language=block.language or None,
        )
    if is_valid_file_path(block.file_path):
        LOGGER.debug("Detected file %s (%s)", block.file_path, block.pattern)
        return ContentBlock(
            kind=BlockKind.FILE,
            payload=block.content,
            id=f"file-{message_id}-{block_hash}",
            file_path=block.file_path,
            language=block.language or None,
        )
    return None


class BlockClassifier:
    """Per-message, idempotent extractor of file and command blocks.

    Each message keeps a set of hashes of the exact source text already
    handled, so re-parsing a growing message only yields new blocks. The
    32-bit hash is a dedup heuristic; collisions are possible and accepted.
    """

    def __init__(self) -> None:
        self._processed: dict[str, set[str]] = {}

    def parse(self, message_id: str, text: str) -> list[ContentBlock]:
        LOGGER.debug("Parsing message %s (%d chars)", message_id, len(text))
        processed = self._processed.setdefault(message_id, set())
        results: list[ContentBlock] = []

        for block in [*detect_code_blocks(text), *detect_file_operations(text)]:
            block_hash = content_hash(block.match)
            if block_hash in processed:
                continue
            processed.add(block_hash)
            parsed = classify_block(block, message_id, block_hash)
            if parsed is not None:
                results.append(parsed)

        LOGGER.debug("Message %s yielded %d new block(s)", message_id, len(results))
        return results

    def has_message(self, message_id: str) -> bool:
        return message_id in self._processed

    def forget(self, message_id: str) -> bool:
        """Drop the dedup state for ``message_id``."""
        return self._processed.pop(message_id, None) is not None

    def reset(self) -> None:
        self._processed.clear()


__all__ = [
    "BLOCK_PATTERNS",
    "BlockClassifier",
    "BlockPattern",
    "DetectedBlock",
    "FILE_OPERATION_PATTERN",
    "classify_block",
    "detect_code_blocks",
    "detect_file_operations",
]
