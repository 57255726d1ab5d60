"""Incremental parser for ``<boltArtifact>``/``<boltAction>`` markup.

Callers hand :meth:`StreamingTagParser.parse` the *entire* text received so
far for a message. Each session remembers how far it has consumed, so every
call only scans the newly appended suffix. A trailing fragment that could
still grow into a tag is left unconsumed until more text arrives, which keeps
the result identical whether the text is delivered at once or in pieces.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from ..structured import Action, ActionType, Artifact

LOGGER = logging.getLogger(__name__)

ARTIFACT_OPEN = "<boltArtifact"
ARTIFACT_CLOSE = "</boltArtifact>"
ACTION_OPEN = "<boltAction"
ACTION_CLOSE = "</boltAction>"

_TAG_RE = re.compile(
    r"(?P<artifact_open><boltArtifact\b(?P<artifact_attrs>[^>]*)>)"
    r"|(?P<artifact_close></boltArtifact>)"
    r"|(?P<action_open><boltAction\b(?P<action_attrs>[^>]*)>)"
    r"|(?P<action_close></boltAction>)"
)
_ATTR_RE = re.compile(r'([A-Za-z_][\w:-]*)\s*=\s*"([^"]*)"')

_OPEN_HEADS = (ARTIFACT_OPEN, ACTION_OPEN)
_CLOSE_HEADS = (ARTIFACT_CLOSE, ACTION_CLOSE)


@dataclass(slots=True)
class ParserCallbacks:
    """Optional hooks invoked as tags are recognised."""

    on_artifact_open: Optional[Callable[[Artifact], None]] = None
    on_action_open: Optional[Callable[[Action], None]] = None
    on_action_close: Optional[Callable[[Action], None]] = None
    on_artifact_complete: Optional[Callable[[Artifact], None]] = None


@dataclass(slots=True)
class ParserSession:
    """Per-message parse state owned by the parser until destroyed."""

    session_id: str
    cursor: int = 0
    open_artifact: Artifact | None = None
    open_action: Action | None = None
    discard_action: bool = False
    action_counter: int = 0
    completed: list[Artifact] = field(default_factory=list)


def parse_attributes(raw: str) -> dict[str, str]:
    """Return the double-quoted ``name="value"`` pairs found in ``raw``."""
    return {name: value for name, value in _ATTR_RE.findall(raw)}


def _could_become_tag(fragment: str, closes: Iterable[str], opens: Iterable[str]) -> bool:
    if ">" in fragment:
        return False
    for head in closes:
        if head.startswith(fragment):
            return True
    for head in opens:
        if head.startswith(fragment) or fragment.startswith(head):
            return True
    return False


def _safe_boundary(
    text: str,
    start: int,
    *,
    closes: Iterable[str] = _CLOSE_HEADS,
    opens: Iterable[str] = _OPEN_HEADS,
) -> int:
    """Return the end of the consumable region of ``text[start:]``.

    A trailing ``<...`` fragment that may still complete into a recognised
    tag is excluded so the next call re-scans it with more text. Every
    unterminated ``<`` is considered, not only the last one, because an open
    tag's attribute values may themselves contain ``<``.
    """
    lt = text.find("<", max(start, text.rfind(">", start) + 1))
    while lt != -1:
        if _could_become_tag(text[lt:], closes, opens):
            return lt
        lt = text.find("<", lt + 1)
    return len(text)


class StreamingTagParser:
    """Stateful tag scanner keyed by message/session id."""

    def __init__(self, callbacks: ParserCallbacks | None = None) -> None:
        self._callbacks = callbacks or ParserCallbacks()
        self._sessions: dict[str, ParserSession] = {}

    # Session registry -------------------------------------------------

    def create_session(self, session_id: str) -> ParserSession:
        """Register ``session_id``; an existing session is returned as-is."""
        session = self._sessions.get(session_id)
        if session is None:
            session = ParserSession(session_id=session_id)
            self._sessions[session_id] = session
            LOGGER.debug("Created parser session %s", session_id)
        return session

    def get_session(self, session_id: str) -> ParserSession | None:
        return self._sessions.get(session_id)

    def has_session(self, session_id: str) -> bool:
        return session_id in self._sessions

    def destroy_session(self, session_id: str) -> bool:
        """Forget all state for ``session_id``. Returns whether it existed."""
        removed = self._sessions.pop(session_id, None)
        if removed is not None:
            LOGGER.debug("Destroyed parser session %s", session_id)
        return removed is not None

    def clear(self) -> None:
        self._sessions.clear()

    @property
    def session_ids(self) -> tuple[str, ...]:
        return tuple(self._sessions)

    def completed_artifacts(self, session_id: str) -> list[Artifact]:
        """Return copies of every artifact closed so far in ``session_id``."""
        session = self._sessions.get(session_id)
        if session is None:
            return []
        return [artifact.snapshot() for artifact in session.completed]

    # Parsing ----------------------------------------------------------

    def parse(self, session_id: str, text: str) -> list[Artifact]:
        """Consume the unseen suffix of ``text`` and return artifacts closed by it."""
        session = self.create_session(session_id)
        if len(text) < session.cursor:
            LOGGER.warning(
                "Session %s received %d chars after consuming %d; ignoring shrunken input",
                session_id,
                len(text),
                session.cursor,
            )
            return []

        completed: list[Artifact] = []
        position = session.cursor
        while position < len(text):
            if session.open_action is not None:
                close = text.find(ACTION_CLOSE, position)
                if close == -1:
                    boundary = _safe_boundary(text, position, closes=(ACTION_CLOSE,), opens=())
                    session.open_action.content += text[position:boundary]
                    position = boundary
                    break
                session.open_action.content += text[position:close]
                position = close + len(ACTION_CLOSE)
                session.cursor = position
                self._close_action(session)
                continue

            match = _TAG_RE.search(text, position)
            if match is None:
                position = _safe_boundary(text, position)
                break
            position = match.end()
            session.cursor = position

            if match.group("artifact_open") is not None:
                self._open_artifact(session, parse_attributes(match.group("artifact_attrs")))
            elif match.group("artifact_close") is not None:
                artifact = self._close_artifact(session)
                if artifact is not None:
                    completed.append(artifact)
            elif match.group("action_open") is not None:
                self._open_action(session, parse_attributes(match.group("action_attrs")))
            else:
                LOGGER.debug("Session %s: ignoring </boltAction> without an open action", session_id)

        session.cursor = position
        return completed

    def _open_artifact(self, session: ParserSession, attrs: dict[str, str]) -> None:
        if session.open_artifact is not None:
            LOGGER.warning(
                "Session %s: artifact %s opened before %s closed; replacing it",
                session.session_id,
                attrs.get("id"),
                session.open_artifact.id,
            )
        artifact = Artifact(
            id=attrs.get("id") or f"{session.session_id}-artifact",
            title=attrs.get("title", ""),
        )
        session.open_artifact = artifact
        if self._callbacks.on_artifact_open:
            self._callbacks.on_artifact_open(artifact.snapshot())

    def _open_action(self, session: ParserSession, attrs: dict[str, str]) -> None:
        session.action_counter += 1
        raw_type = attrs.get("type", "").strip().lower()
        try:
            action_type = ActionType(raw_type)
        except ValueError:
            LOGGER.warning("Session %s: unsupported action type %r; discarding", session.session_id, raw_type)
            action_type = ActionType.SHELL
            session.discard_action = True
        else:
            session.discard_action = False
        action = Action(
            id=f"{session.session_id}-{session.action_counter}",
            type=action_type,
            file_path=attrs.get("filePath") or None,
        )
        session.open_action = action
        if not session.discard_action and self._callbacks.on_action_open:
            self._callbacks.on_action_open(action.snapshot())

    def _close_action(self, session: ParserSession) -> None:
        action = session.open_action
        discard = session.discard_action
        session.open_action = None
        session.discard_action = False
        if action is None or discard:
            return
        action.closed = True
        if session.open_artifact is not None:
            session.open_artifact.actions.append(action)
        if self._callbacks.on_action_close:
            self._callbacks.on_action_close(action.snapshot())

    def _close_artifact(self, session: ParserSession) -> Artifact | None:
        artifact = session.open_artifact
        if artifact is None:
            LOGGER.debug("Session %s: ignoring </boltArtifact> without an open artifact", session.session_id)
            return None
        session.open_artifact = None
        artifact.closed = True
        finished = artifact.snapshot()
        session.completed.append(finished)
        if self._callbacks.on_artifact_complete:
            self._callbacks.on_artifact_complete(finished.snapshot())
        return finished.snapshot()


__all__ = [
    "ACTION_CLOSE",
    "ACTION_OPEN",
    "ARTIFACT_CLOSE",
    "ARTIFACT_OPEN",
    "ParserCallbacks",
    "ParserSession",
    "StreamingTagParser",
    "parse_attributes",
]
