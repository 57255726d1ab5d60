from __future__ import annotations

import logging

import pytest

from artiflow.parsing.stream import ParserCallbacks, StreamingTagParser, parse_attributes
from artiflow.structured import ActionType

REPLY = (
    "Let me build that.\n"
    '<boltArtifact id="todo" title="Todo App">\n'
    '<boltAction type="file" filePath="/src/App.jsx">export default function App() {\n'
    "  return <div>Todo</div>;\n"
    "}\n</boltAction>\n"
    '<boltAction type="shell">npm install</boltAction>\n'
    "</boltArtifact>\n"
    '<boltArtifact id="docs" title="Docs">'
    '<boltAction type="file" filePath="/README.md"># Todo</boltAction>'
    "</boltArtifact>"
    "All done."
)


def _full_parse(text: str) -> list[dict[str, object]]:
    parser = StreamingTagParser()
    return [artifact.to_dict() for artifact in parser.parse("m1", text)]


@pytest.mark.parametrize("chunk_size", [1, 2, 5, 13, 64])
def test_growing_prefix_matches_single_parse(chunk_size: int) -> None:
    parser = StreamingTagParser()
    streamed = []
    for end in range(chunk_size, len(REPLY) + chunk_size, chunk_size):
        streamed.extend(parser.parse("m1", REPLY[:end]))

    assert [artifact.to_dict() for artifact in streamed] == _full_parse(REPLY)
    assert [artifact.id for artifact in streamed] == ["todo", "docs"]


LT_IN_TITLE = '<boltArtifact id="a" title="x<y"><boltAction type="shell">ls</boltAction></boltArtifact>'


@pytest.mark.parametrize("split", range(1, len(LT_IN_TITLE)))
def test_attribute_containing_lt_survives_any_split(split: int) -> None:
    parser = StreamingTagParser()

    streamed = parser.parse("m1", LT_IN_TITLE[:split]) + parser.parse("m1", LT_IN_TITLE)

    assert [artifact.to_dict() for artifact in streamed] == _full_parse(LT_IN_TITLE)
    assert streamed[0].title == "x<y"


def test_actions_capture_type_path_and_content() -> None:
    parser = StreamingTagParser()

    artifacts = parser.parse("m1", REPLY)

    todo = artifacts[0]
    assert todo.title == "Todo App"
    assert todo.closed is True
    assert [action.type for action in todo.actions] == [ActionType.FILE, ActionType.SHELL]
    assert todo.actions[0].file_path == "/src/App.jsx"
    assert "return <div>Todo</div>;" in todo.actions[0].content
    assert todo.actions[1].content == "npm install"
    assert [action.id for action in todo.actions] == ["m1-1", "m1-2"]


def test_callbacks_fire_in_document_order() -> None:
    events: list[str] = []
    parser = StreamingTagParser(
        ParserCallbacks(
            on_artifact_open=lambda artifact: events.append(f"open:{artifact.id}"),
            on_action_open=lambda action: events.append(f"action-open:{action.id}"),
            on_action_close=lambda action: events.append(f"action-close:{action.id}"),
            on_artifact_complete=lambda artifact: events.append(f"complete:{artifact.id}"),
        )
    )

    parser.parse("s", REPLY)

    assert events == [
        "open:todo",
        "action-open:s-1",
        "action-close:s-1",
        "action-open:s-2",
        "action-close:s-2",
        "complete:todo",
        "open:docs",
        "action-open:s-3",
        "action-close:s-3",
        "complete:docs",
    ]


def test_open_action_content_accumulates_across_calls() -> None:
    closed: list[str] = []
    parser = StreamingTagParser(ParserCallbacks(on_action_close=lambda action: closed.append(action.content)))
    head = '<boltArtifact id="a" title="A"><boltAction type="shell">npm '

    parser.parse("s", head)
    session = parser.get_session("s")
    assert session is not None and session.open_action is not None
    assert session.open_action.content == "npm "

    parser.parse("s", head + "run dev</boltAc")
    assert session.open_action.content == "npm run dev"
    assert closed == []

    parser.parse("s", head + "run dev</boltAction>")
    assert closed == ["npm run dev"]


def test_stray_close_tags_are_ignored() -> None:
    parser = StreamingTagParser()

    result = parser.parse("s", "</boltAction></boltArtifact>text")

    assert result == []
    assert parser.get_session("s").cursor == len("</boltAction></boltArtifact>text")


def test_second_artifact_open_replaces_the_first(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="artiflow")
    parser = StreamingTagParser()

    result = parser.parse(
        "s",
        '<boltArtifact id="first" title="1"><boltArtifact id="second" title="2"></boltArtifact>',
    )

    assert [artifact.id for artifact in result] == ["second"]
    assert "replacing it" in caplog.text


def test_unknown_action_type_is_discarded() -> None:
    parser = StreamingTagParser()

    result = parser.parse(
        "s",
        '<boltArtifact id="a" title="A"><boltAction type="deploy">ship it</boltAction>'
        '<boltAction type="shell">ls</boltAction></boltArtifact>',
    )

    assert [action.content for action in result[0].actions] == ["ls"]


def test_missing_artifact_id_defaults_to_session_name() -> None:
    parser = StreamingTagParser()

    result = parser.parse("chat-7", '<boltArtifact title="Untitled"></boltArtifact>')

    assert result[0].id == "chat-7-artifact"


def test_shrunken_input_is_ignored() -> None:
    parser = StreamingTagParser()
    parser.parse("s", "some long text")

    assert parser.parse("s", "short") == []
    assert parser.get_session("s").cursor == len("some long text")


def test_sessions_are_explicitly_managed() -> None:
    parser = StreamingTagParser()
    parser.parse("a", '<boltArtifact id="x" title="X"></boltArtifact>')
    parser.create_session("b")

    assert parser.session_ids == ("a", "b")
    assert [artifact.id for artifact in parser.completed_artifacts("a")] == ["x"]

    assert parser.destroy_session("a") is True
    assert parser.destroy_session("a") is False
    assert parser.has_session("a") is False
    assert parser.completed_artifacts("a") == []

    # A destroyed session starts over from the beginning of the text.
    again = parser.parse("a", '<boltArtifact id="x" title="X"></boltArtifact>')
    assert [artifact.id for artifact in again] == ["x"]

    parser.clear()
    assert parser.session_ids == ()


def test_returned_artifacts_are_detached_from_parser_state() -> None:
    parser = StreamingTagParser()
    artifact = parser.parse("s", '<boltArtifact id="x" title="X"></boltArtifact>')[0]

    artifact.actions.clear()
    artifact.title = "changed"

    assert parser.completed_artifacts("s")[0].title == "X"


def test_parse_attributes_reads_double_quoted_values() -> None:
    assert parse_attributes(' type="file" filePath="/a b.txt" data-x="1"') == {
        "type": "file",
        "filePath": "/a b.txt",
        "data-x": "1",
    }
