from __future__ import annotations

import logging
import sys
import textwrap
from dataclasses import dataclass
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from artiflow.tools.file_store import FileEntry, FileStore, FolderEntry  # noqa: E402

MARKDOWN_REPLY = textwrap.dedent(
    """
    Here is the project.

    /src/App.jsx
    ```jsx
    export default function App() {
      return <h1>Hello</h1>;
    }
    ```

    Run this in setup.sh:

    ```bash
    npm install react react-dom
    ```
    """
).lstrip()

TAGGED_REPLY = textwrap.dedent(
    """
    Sure, building it now.
    <boltArtifact id="todo-app" title="Todo App">
    <boltAction type="file" filePath="/package.json">{"name": "todo", "dependencies": {"react": "^18.2.0", "react-dom": "^18.2.0"}}</boltAction>
    <boltAction type="shell">npm install</boltAction>
    </boltArtifact>
    Done.
    """
).lstrip()


@dataclass(slots=True)
class ReplyFiles:
    """Sample model replies written to disk for CLI tests."""

    root: Path
    markdown: Path
    tagged: Path


@pytest.fixture()
def reply_files(tmp_path: Path) -> ReplyFiles:
    markdown = tmp_path / "reply.md"
    markdown.write_text(MARKDOWN_REPLY, encoding="utf-8")
    tagged = tmp_path / "reply.txt"
    tagged.write_text(TAGGED_REPLY, encoding="utf-8")
    return ReplyFiles(root=tmp_path, markdown=markdown, tagged=tagged)


@pytest.fixture()
def src_store() -> FileStore:
    """Store holding ``/src`` with two files and a nested ``/src/lib`` folder."""
    return FileStore(
        {
            "/src": FolderEntry(),
            "/src/a.js": FileEntry(content="a"),
            "/src/b.js": FileEntry(content="b"),
            "/src/lib": FolderEntry(),
            "/src/lib/util.js": FileEntry(content="util"),
            "/README.md": FileEntry(content="readme"),
        }
    )


@pytest.fixture()
def telemetry_caplog(caplog: pytest.LogCaptureFixture) -> pytest.LogCaptureFixture:
    caplog.set_level(logging.INFO, logger="artiflow.telemetry")
    return caplog


@pytest.fixture()
def markdown_reply() -> str:
    return MARKDOWN_REPLY


@pytest.fixture()
def tagged_reply() -> str:
    return TAGGED_REPLY
