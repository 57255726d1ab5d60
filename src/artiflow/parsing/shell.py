"""Heuristics that separate runnable shell commands from script files.

The surface is a set of data tables plus a small decision procedure so each
rule can be audited and tested on its own. Results are best-effort: the
tables encode statistical signal, not a shell grammar.
"""

from __future__ import annotations

import re
from typing import Pattern, Sequence

SHELL_LANGUAGES: frozenset[str] = frozenset({"bash", "sh", "shell", "zsh", "fish", "powershell", "ps1"})

# Strictly greater than this share of lines must look like commands.
COMMAND_SEQUENCE_RATIO = 0.7

COMMAND_PATTERNS: tuple[tuple[str, Pattern[str]], ...] = (
    ("npm", re.compile(r"^(npm|yarn|pnpm)\s+(install|run|start|build|dev|test|init|create|add|remove)")),
    (
        "git",
        re.compile(
            r"^(git)\s+(add|commit|push|pull|clone|status|checkout|branch|merge|rebase|init|remote|fetch|log)"
        ),
    ),
    ("docker", re.compile(r"^(docker|docker-compose)\s+")),
    ("build", re.compile(r"^(make|cmake|gradle|mvn|cargo|go)\s+")),
    ("network", re.compile(r"^(curl|wget|ping|ssh|scp|rsync)\s+")),
    ("posix", re.compile(r"^(cat|chmod|cp|echo|hostname|kill|ln|ls|mkdir|mv|ps|pwd|rm|rmdir|xxd)\s*")),
    ("interpreters", re.compile(r"^(node|python|python3|java|go|rust|ruby|php|perl)\s+")),
    ("text-processing", re.compile(r"^(grep|sed|awk|cut|tr|sort|uniq|wc|diff)\s+")),
    ("archive", re.compile(r"^(tar|zip|unzip|gzip|gunzip)\s+")),
    ("process", re.compile(r"^(ps|top|htop|kill|killall|jobs|nohup)\s*")),
    ("system", re.compile(r"^(df|du|free|uname|whoami|id|groups|date|uptime)\s*")),
)

COMMAND_PREFIXES: tuple[Pattern[str], ...] = (
    re.compile(r"^sudo\s+"),
    re.compile(r"^time\s+"),
    re.compile(r"^nohup\s+"),
    re.compile(r"^watch\s+"),
    re.compile(r"^env\s+\w+=\w+\s+"),
)

SCRIPT_INDICATORS: tuple[tuple[str, Pattern[str]], ...] = (
    ("shebang", re.compile(r"^#!")),
    ("function-keyword", re.compile(r"function\s+\w+")),
    ("function-definition", re.compile(r"^\w+\s*\(\s*\)\s*\{")),
    ("control-flow", re.compile(r"^(if|for|while|case)\s+.*?(then|do|in)")),
    ("assignment", re.compile(r"^\w+=[^=].*$")),
    ("declaration", re.compile(r"^(local|declare|readonly)\s+")),
    ("source", re.compile(r"^(source|\.)\s+")),
    ("exit", re.compile(r"^(exit|return)\s+\d+")),
)

# Applied to the first word of a line.
EXECUTABLE_PATTERNS: tuple[Pattern[str], ...] = (
    re.compile(r"^[a-z][a-z0-9_-]*$", re.IGNORECASE),
    re.compile(r"^\./[a-z0-9_./-]+$", re.IGNORECASE),
    re.compile(r"^/[a-z0-9_./-]+$", re.IGNORECASE),
)
# Applied to the whole line: an executable name followed by flags.
EXECUTABLE_WITH_FLAGS = re.compile(r"^[a-z][a-z0-9_-]*\s+-.+", re.IGNORECASE)

_CHAIN_RE = re.compile(r"[;&|]{1,2}")
_FUNCTION_HEADER_RE = re.compile(r"^\w+\s*\(\s*\)")
_CONTROL_HEADER_RE = re.compile(r"^(if|for|while|case|function|until|select)\s")


def is_shell_language(language: str | None) -> bool:
    return bool(language) and language.lower() in SHELL_LANGUAGES


def script_indicator(content: str) -> str | None:
    """Return the name of the first script indicator found in ``content``."""
    for raw_line in content.strip().split("\n"):
        line = raw_line.strip()
        if not line or (line.startswith("#") and not line.startswith("#!")):
            continue
        for name, pattern in SCRIPT_INDICATORS:
            if pattern.search(line):
                return name
    return None


def looks_like_script(content: str) -> bool:
    """Return ``True`` when ``content`` reads like a script to save, not run."""
    return script_indicator(content) is not None


def strip_command_prefixes(line: str) -> str:
    cleaned = line
    for prefix in COMMAND_PREFIXES:
        cleaned = prefix.sub("", cleaned, count=1)
    return cleaned


def command_family(line: str) -> str | None:
    """Return the table family matching ``line`` after prefix stripping."""
    cleaned = strip_command_prefixes(line)
    for family, pattern in COMMAND_PATTERNS:
        if pattern.search(cleaned):
            return family
    return None


def is_simple_command(line: str) -> bool:
    """Return ``True`` for lines shaped like ``executable [args]``."""
    words = line.split()
    if not words:
        return False
    first_word = words[0]

    if (
        "=" in line
        and not line.startswith("export ")
        and not line.startswith("env ")
        and "=" not in first_word
    ):
        return False
    if "function " in line or _FUNCTION_HEADER_RE.search(line):
        return False
    if _CONTROL_HEADER_RE.search(line):
        return False

    if any(pattern.search(first_word) for pattern in EXECUTABLE_PATTERNS):
        return True
    return bool(EXECUTABLE_WITH_FLAGS.search(line))


def is_single_line_command(line: str) -> bool:
    if _CHAIN_RE.search(line):
        parts = [part.strip() for part in _CHAIN_RE.split(line)]
        return all(part and not looks_like_script(part) for part in parts)
    if command_family(line) is not None:
        return True
    return is_simple_command(strip_command_prefixes(line))


def is_command_sequence(lines: Sequence[str]) -> bool:
    if not lines:
        return False
    command_like = [
        line
        for line in lines
        if line and not line.startswith("#") and (is_single_line_command(line) or is_simple_command(line))
    ]
    return len(command_like) / len(lines) > COMMAND_SEQUENCE_RATIO


def is_shell_command(content: str, language: str | None) -> bool:
    """Decide whether a fenced block should be executed rather than saved."""
    if not is_shell_language(language):
        return False
    trimmed = content.strip()
    lines = [line.strip() for line in trimmed.split("\n") if line.strip()]
    if not lines:
        return False
    if looks_like_script(trimmed):
        return False
    if len(lines) == 1:
        return is_single_line_command(lines[0])
    return is_command_sequence(lines)


__all__ = [
    "COMMAND_PATTERNS",
    "COMMAND_PREFIXES",
    "COMMAND_SEQUENCE_RATIO",
    "SCRIPT_INDICATORS",
    "SHELL_LANGUAGES",
    "command_family",
    "is_command_sequence",
    "is_shell_command",
    "is_shell_language",
    "is_simple_command",
    "is_single_line_command",
    "looks_like_script",
    "script_indicator",
    "strip_command_prefixes",
]
