"""Command-line interface for figma-sync."""

from dataclasses import replace
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from figma_sync.api import FigmaApi
from figma_sync.config import SyncSettings, load_settings, parse_file_id, save_settings
from figma_sync.core.importer.json_reader import parse_figma_file
from figma_sync.core.tree.lookup import build_node_lookup
from figma_sync.errors import SyncError
from figma_sync.logging_config import configure_logging
from figma_sync.sync import refresh_page_list, sync_document

app = typer.Typer(help="Sync a Figma document into a local asset directory.")

_DEFAULT_SETTINGS_PATH = Path("figma-sync.json")

SettingsOption = Annotated[
    Path,
    typer.Option("--settings", "-s", help="Settings file (JSON)"),
]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    log_file: Annotated[
        Path | None,
        typer.Option("--log-file", help="Also write a debug log to this file"),
    ] = None,
) -> None:
    configure_logging(verbose=verbose, log_file=log_file)


def _load(settings_path: Path) -> SyncSettings:
    try:
        return load_settings(settings_path)
    except SyncError as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e


def _run(settings_path: Path, *, incremental: bool) -> None:
    settings = _load(settings_path)
    report = sync_document(settings, incremental=incremental)

    if report.refreshed_pages is not None:
        save_settings(settings_path, replace(settings, pages=report.refreshed_pages))
        typer.echo(
            f"The document's pages changed. Updated the page list in {settings_path}; "
            "check the selection and sync again."
        )
        raise typer.Exit(2)
    if not report.ok or report.data is None:
        typer.echo(f"Sync failed: {report.error}", err=True)
        raise typer.Exit(1)

    data = report.data
    mode = "incremental" if data.is_incremental else "full"
    typer.echo(
        f"Synced {data.document.name!r} ({mode}): "
        f"{len(data.server_render_items)} server renders, "
        f"{len(data.image_fill_refs)} image fills, "
        f"{data.downloads.downloaded} files downloaded, {data.downloads.skipped} unchanged"
    )


@app.command()
def init(
    file_url: str = typer.Argument(..., help="Figma file URL or file key"),
    settings_path: SettingsOption = _DEFAULT_SETTINGS_PATH,
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing settings file"),
) -> None:
    """Create a settings file for a Figma document."""
    if settings_path.exists() and not force:
        logger.error("Settings file {} already exists (use --force to overwrite)", settings_path)
        raise typer.Exit(1)
    try:
        file_id = parse_file_id(file_url)
    except SyncError as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e
    save_settings(settings_path, SyncSettings(file_id=file_id))
    typer.echo(f"Wrote {settings_path} for file {file_id}")


@app.command()
def sync(settings_path: SettingsOption = _DEFAULT_SETTINGS_PATH) -> None:
    """Download the document and all assets it needs."""
    _run(settings_path, incremental=False)


@app.command()
def update(settings_path: SettingsOption = _DEFAULT_SETTINGS_PATH) -> None:
    """Re-render only nodes changed since the last sync."""
    _run(settings_path, incremental=True)


@app.command()
def pages(settings_path: SettingsOption = _DEFAULT_SETTINGS_PATH) -> None:
    """List the document's pages and refresh the page list in the settings file."""
    settings = _load(settings_path)
    try:
        settings.validate()
        document = parse_figma_file(
            FigmaApi().get_document(settings.file_id), file_id=settings.file_id
        )
        lookup = build_node_lookup(document)
    except SyncError as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e

    page_list = refresh_page_list(document, lookup, settings.pages)
    save_settings(settings_path, replace(settings, pages=page_list))
    typer.echo(f"{len(page_list)} pages:\n")
    for page in page_list:
        mark = "x" if page.selected else " "
        typer.echo(f"  [{mark}] {page.name}  [id={page.node_id}]")
