"""Developer CLI for running the extraction and patch pipeline over files."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from .config import DEFAULT_CONFIG_NAME, ArtiflowConfig, dump_config, load_config
from .errors import ConfigError
from .parsing.classifier import BlockClassifier
from .parsing.stream import StreamingTagParser
from .schema import Command
from .telemetry import configure_logging
from .tools.diff_patch import apply_diff_patches
from .workbench import Workbench

LOGGER = logging.getLogger(__name__)

APP_HELP = "Extract files, commands and patches from streamed model output."

app = typer.Typer(help=APP_HELP)


def _read_text(path: Path) -> str:
    if not path.exists():
        raise typer.BadParameter(f"File not found: {path}")
    return path.read_text(encoding="utf-8")


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


def _config_from_context(ctx: typer.Context) -> ArtiflowConfig:
    obj = ctx.obj or {}
    config = obj.get("config")
    return config if isinstance(config, ArtiflowConfig) else ArtiflowConfig()


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to an artiflow YAML configuration file.",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (defaults to the configured level).",
    ),
) -> None:
    """Load configuration and set up logging for every subcommand."""
    try:
        loaded = load_config(config)
    except ConfigError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error
    configure_logging(log_level or loaded.logging.level)
    ctx.obj = {"config": loaded}


@app.command()
def blocks(
    file: Path = typer.Argument(..., help="Markdown file containing a model reply."),
    message_id: str = typer.Option("cli", "--message-id", "-m", help="Message id used in block ids."),
) -> None:
    """Classify fenced blocks in FILE and print them as JSON."""
    classifier = BlockClassifier()
    found = classifier.parse(message_id, _read_text(file))
    _echo_json([block.to_dict() for block in found])


@app.command()
def artifacts(
    file: Path = typer.Argument(..., help="File containing <boltArtifact> markup."),
    chunk_size: int = typer.Option(
        0,
        "--chunk-size",
        "-n",
        min=0,
        help="Feed the text as a growing prefix in steps of this many characters (0 = all at once).",
    ),
    session_id: str = typer.Option("cli", "--session-id", help="Parser session id."),
) -> None:
    """Stream FILE through the tag parser and print completed artifacts."""
    text = _read_text(file)
    parser = StreamingTagParser()
    completed = []
    if chunk_size:
        for end in range(chunk_size, len(text) + chunk_size, chunk_size):
            completed.extend(parser.parse(session_id, text[:end]))
    else:
        completed.extend(parser.parse(session_id, text))
    parser.destroy_session(session_id)
    _echo_json([artifact.to_dict() for artifact in completed])


@app.command()
def patch(
    original: Path = typer.Argument(..., help="File holding the original content."),
    patch_file: Path = typer.Argument(..., metavar="PATCH", help="File holding SEARCH/REPLACE blocks."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the result here instead of stdout."),
) -> None:
    """Apply SEARCH/REPLACE blocks from PATCH to ORIGINAL."""
    result = apply_diff_patches(_read_text(original), _read_text(patch_file))
    if not result.has_changes:
        typer.echo("No patch blocks applied.", err=True)
        raise typer.Exit(code=1)

    ranges = ", ".join(f"{start}-{end}" for start, end in result.touched_line_ranges)
    typer.echo(f"Touched lines: {ranges}", err=True)
    if output is None:
        typer.echo(result.modified_content)
    else:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(result.modified_content, encoding="utf-8")
        typer.echo(f"Wrote {output}", err=True)


async def _dry_run(command: Command) -> str:
    return ""


def _write_files(out_dir: Path, files: Dict[str, str]) -> List[str]:
    """Write ``files`` below ``out_dir`` and return the paths that would escape it."""
    root = out_dir.resolve()
    escaped: List[str] = []
    for path, content in files.items():
        target = (root / path.lstrip("/")).resolve()
        if not target.is_relative_to(root):
            LOGGER.warning("Refusing to write %s outside %s", path, out_dir)
            escaped.append(path)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return escaped


@app.command()
def apply(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="Model reply to apply."),
    tagged: bool = typer.Option(
        False,
        "--tagged/--markdown",
        help="Parse <boltArtifact> markup instead of markdown code fences.",
    ),
    out_dir: Optional[Path] = typer.Option(None, "--out", help="Directory to write the resulting files into."),
    execute: bool = typer.Option(
        False,
        "--execute/--no-execute",
        help="Run extracted shell commands (default only lists them).",
    ),
) -> None:
    """Run FILE through the full workbench and report files and commands."""
    config = _config_from_context(ctx)
    executor = None if execute else _dry_run
    bench = Workbench.from_config(config, executor=executor)
    text = _read_text(file)

    async def _run() -> None:
        if tagged:
            bench.ingest_tagged("cli", text)
        else:
            bench.ingest_markdown("cli", text)
        bench.end_message("cli")
        await bench.aclose()

    asyncio.run(_run())

    files = bench.file_store.file_contents()
    refused = list(bench.refused_paths)
    if out_dir is not None:
        refused.extend(_write_files(out_dir, files))

    commands: List[Dict[str, Any]] = [
        {"command": command.text, "kind": command.kind.value, "status": command.status.value}
        for command in reversed(bench.command_queue.get_completed_commands())
    ]
    _echo_json(
        {
            "files": sorted(files),
            "commands": commands,
            "refused": refused,
            "validation": {
                path: result.to_dict() for path, result in sorted(bench.validation_results.items())
            },
        }
    )


@app.command("init-config")
def init_config(
    path: Path = typer.Argument(Path(DEFAULT_CONFIG_NAME), help="Where to write the configuration."),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file."),
) -> None:
    """Write the default configuration as YAML."""
    if path.exists() and not force:
        typer.echo(f"{path} already exists; pass --force to overwrite.")
        raise typer.Exit(code=1)
    dump_config(ArtiflowConfig(), path)
    typer.echo(f"Wrote default configuration to {path}.")


if __name__ == "__main__":
    app()
