import sys
from pathlib import Path

import typer
import ulid
from dotenv import load_dotenv

from patchkit.config import EngineSettings
from patchkit.engine.models import V4ASearchMode
from patchkit.logging import setup_logging
from patchkit.tools.contract import (
    ApplyV4APatchParams,
    ApplyV4APatchRequest,
    SearchReplaceParams,
    SearchReplaceRequest,
    ToolResult,
)
from patchkit.tools.editing import run_tool
from patchkit.util.events import EventLogger

app = typer.Typer(no_args_is_help = True)


def _read_source(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    try:
        return Path(source).read_text(encoding="utf-8")
    except OSError as exc:
        raise typer.BadParameter(f"Cannot read {source}: {exc}")


def _load_settings(search_mode: V4ASearchMode | None = None) -> EngineSettings:
    try:
        settings = EngineSettings.from_env()
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid PATCHKIT_* settings: {exc}")
    if search_mode is not None:
        settings.v4a_search_mode = search_mode
    setup_logging(settings.log_level)
    return settings


def _event_logger(settings: EngineSettings) -> EventLogger | None:
    if settings.events_file is None:
        return None
    return EventLogger(settings.events_file)


def _emit(result: ToolResult, as_json: bool) -> None:
    output = result.to_output()
    if as_json:
        typer.echo(output.model_dump_json(indent=2))
    elif output.success:
        typer.echo(output.message)
    else:
        typer.echo(output.error, err=True)

    if not output.success:
        raise typer.Exit(code=1)


@app.command("v4a")
def v4a_cmd(
    path: str = typer.Argument(..., help="File to patch, relative to the workspace"),
    patch_file: str = typer.Argument(..., help="V4A patch file, or - for stdin"),
    workspace: Path = typer.Option(Path("."), "--workspace", "-w", help="Workspace root"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview without writing"),
    search_mode: V4ASearchMode | None = typer.Option(
        None,
        "--search-mode",
        help="Where each hunk's context search starts: restart or continue",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
):
    """
    Apply a V4A context-marker patch to a file.
    """
    settings = _load_settings(search_mode)
    request = ApplyV4APatchRequest(
        request_id=f"v4a_{ulid.ULID()}",
        params=ApplyV4APatchParams(
            path=path,
            patch=_read_source(patch_file),
            dry_run=dry_run,
        ),
    )
    result = run_tool(workspace, request, settings, _event_logger(settings))
    _emit(result, as_json)


@app.command("search-replace")
def search_replace_cmd(
    path: str = typer.Argument(..., help="File to edit, relative to the workspace"),
    diff_file: str = typer.Argument(..., help="SEARCH/REPLACE blocks file, or - for stdin"),
    workspace: Path = typer.Option(Path("."), "--workspace", "-w", help="Workspace root"),
    preview: bool = typer.Option(False, "--preview", help="Show matches without writing"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
):
    """
    Apply SEARCH/REPLACE blocks to a file.
    """
    settings = _load_settings()
    request = SearchReplaceRequest(
        request_id=f"sr_{ulid.ULID()}",
        params=SearchReplaceParams(
            path=path,
            diff=_read_source(diff_file),
            preview=preview,
        ),
    )
    result = run_tool(workspace, request, settings, _event_logger(settings))
    _emit(result, as_json)


@app.callback()
def main():
    """
    patchkit CLI
    """
    load_dotenv()
