"""Command-line interface for BookmarkBrain."""

import asyncio
import signal
import sys
from pathlib import Path
from typing import Optional, Tuple

import click
import uvicorn

from . import __version__
from .core.kv_store import StorageError

config_dir_option = click.option(
    "--config-dir",
    type=click.Path(path_type=Path),
    default=None,
    help="Configuration directory (default: ~/.bookmarkbrain)",
)


def _load_services(config_dir: Optional[Path], verbose: bool = False, recover: bool = False):
    """Load configuration and build services, exiting with a message on failure."""
    from .config import ConfigError, ConfigManager, configure_logging
    from .services import build_services

    cm = ConfigManager(config_dir)
    try:
        app_config = cm.load_app_config()
        env_settings = cm.load_env_settings()
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)

    configure_logging("DEBUG" if verbose else app_config.log_level)

    try:
        return build_services(cm, app_config, env_settings, recover=recover)
    except StorageError as e:
        click.echo(f"Storage error: {e}", err=True)
        sys.exit(1)


def _is_placeholder_secret(value: Optional[str]) -> bool:
    """Detect placeholder/empty secret values that should be replaced."""
    if value is None:
        return True

    normalized = value.strip().lower()
    if not normalized:
        return True

    markers = ("your-", "replace-with", "example", "changeme")
    return any(marker in normalized for marker in markers)


@click.group()
@click.version_option(version=__version__, prog_name="bookmarkbrain")
def cli():
    """BookmarkBrain - import bookmarks and let an LLM summarize them."""
    pass


@cli.command()
@config_dir_option
@click.option(
    "--google-api-key",
    type=str,
    default=None,
    help="Gemini API key (will be saved to .env file)",
)
def init(config_dir: Optional[Path], google_api_key: Optional[str]):
    """Initialize BookmarkBrain configuration.

    Creates the configuration directory, .env file, config.yaml and storage directory.
    """
    from .config import ConfigError, ConfigManager
    from .models.config import AppConfig

    try:
        cm = ConfigManager(config_dir)

        click.echo(f"Initializing BookmarkBrain at {cm.config_dir}...")
        cm.config_dir.mkdir(parents=True, exist_ok=True)

        cm.create_env_file(google_api_key)
        click.echo("[OK] Created .env file")

        storage_dir = cm.config_dir / "storage"
        storage_dir.mkdir(parents=True, exist_ok=True)

        cm.save_app_config(AppConfig(storage_path=str(storage_dir)))
        click.echo("[OK] Created config.yaml")
        click.echo(f"[OK] Created storage directory at {storage_dir}")

        if not google_api_key:
            click.echo(f"\n[WARNING] Please set GOOGLE_API_KEY in: {cm.env_file}")

        click.echo("\nImport bookmarks with: bookmarkbrain import --file bookmarks.html")

    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option("--host", type=str, default=None, help="Host to bind (default: from config)")
@click.option("--port", type=int, default=None, help="Port to bind (default: from config)")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development")
@config_dir_option
def serve(host: Optional[str], port: Optional[int], reload: bool, config_dir: Optional[Path]):
    """Start the BookmarkBrain API server."""
    import os

    from .config import CONFIG_DIR_ENV, ConfigError, ConfigManager

    cm = ConfigManager(config_dir)
    try:
        app_config = cm.load_app_config()
        cm.load_env_settings()
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)

    if config_dir:
        os.environ[CONFIG_DIR_ENV] = str(config_dir)

    host = host or app_config.host
    port = port or app_config.port

    click.echo("=" * 60)
    click.echo("Starting BookmarkBrain API server...")
    click.echo("=" * 60)
    click.echo(f"Config directory: {cm.config_dir}")
    click.echo(f"Server URL: http://{host}:{port}")
    click.echo(f"API docs: http://{host}:{port}/docs")
    click.echo("=" * 60)

    uvicorn.run(
        "bookmarkbrain.api:app",
        host=host,
        port=port,
        reload=reload,
        log_level=app_config.log_level.lower(),
    )


@cli.command(name="import")
@click.option(
    "--file",
    "files",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Bookmark export (.html) or text file with one URL per line",
)
@click.option("--url", "urls", multiple=True, help="URL to import (repeatable)")
@config_dir_option
@click.option("--verbose", "-v", is_flag=True, default=False, help="Debug logging")
def import_command(
    files: Tuple[Path, ...],
    urls: Tuple[str, ...],
    config_dir: Optional[Path],
    verbose: bool,
):
    """Import bookmarks without summarizing them."""
    from .core.import_parsers import parse_bookmarks_html, parse_import_text, parse_url_list

    if not files and not urls:
        click.echo("Nothing to import: pass --file and/or --url", err=True)
        sys.exit(1)

    candidates = []
    for path in files:
        text = path.read_text(encoding="utf-8", errors="replace")
        if path.suffix.lower() in (".html", ".htm"):
            parsed = parse_bookmarks_html(text)
        else:
            parsed = parse_import_text(text)
        click.echo(f"{path.name}: found {len(parsed)} link(s)")
        candidates.extend(parsed)

    candidates.extend(parse_url_list("\n".join(urls)))

    services = _load_services(config_dir, verbose)
    try:
        result = services.manager.import_candidates(candidates)
    except StorageError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Imported {len(result.added)} bookmark(s), skipped {result.skipped} duplicate(s)")
    if result.invalid:
        click.echo(f"Ignored {result.invalid} malformed URL(s)")
    if result.added:
        click.echo("Summarize them with: bookmarkbrain summarize")


@cli.command(name="list")
@click.option(
    "--status",
    type=click.Choice(["imported", "pending", "done", "error"]),
    default=None,
    help="Only show bookmarks with this status",
)
@click.option("--category", type=str, default=None, help="Only show this category")
@click.option("--details", is_flag=True, default=False, help="Show summaries and takeaways")
@config_dir_option
def list_command(
    status: Optional[str],
    category: Optional[str],
    details: bool,
    config_dir: Optional[Path],
):
    """List stored bookmarks, newest first."""
    from .models.bookmark import BookmarkStatus, Category

    services = _load_services(config_dir)
    bookmarks = services.manager.list_bookmarks(
        status=BookmarkStatus(status) if status else None,
        category=Category.coerce(category) if category else None,
    )

    for bookmark in bookmarks:
        click.echo(
            f"[{bookmark.status.value:<8}] {bookmark.category.value:<13} "
            f"{bookmark.title}  <{bookmark.url}>  ({bookmark.id})"
        )
        if details and bookmark.summary:
            click.echo(f"    {bookmark.summary}")
            for takeaway in bookmark.takeaways:
                click.echo(f"    - {takeaway}")

    click.echo(f"{len(bookmarks)} bookmark(s)")


@cli.command()
@click.option("--id", "bookmark_id", type=str, default=None, help="Summarize only this bookmark")
@config_dir_option
@click.option("--verbose", "-v", is_flag=True, default=False, help="Debug logging")
def summarize(bookmark_id: Optional[str], config_dir: Optional[Path], verbose: bool):
    """Summarize imported and failed bookmarks in rate-limited batches.

    Press Ctrl+C to stop after the batch in flight.
    """
    from .models.bookmark import BookmarkStatus

    services = _load_services(config_dir, verbose, recover=True)

    if bookmark_id:
        try:
            updated = asyncio.run(services.pipeline.summarize_one(bookmark_id))
        except StorageError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        if updated is None:
            click.echo(f"Bookmark {bookmark_id} not found or already summarized", err=True)
            sys.exit(1)
        click.echo(f"[{updated.status.value}] {updated.title}: {updated.summary}")
        sys.exit(0 if updated.status == BookmarkStatus.DONE else 1)

    result = asyncio.run(_run_batch(services.pipeline))

    if result.total == 0:
        click.echo("Nothing to summarize")
        return

    click.echo(
        f"Done: {result.succeeded} summarized, {result.failed} failed, "
        f"{result.total - result.completed} not started"
    )
    if result.cancelled:
        click.echo("Run cancelled; re-run 'bookmarkbrain summarize' to continue")


async def _run_batch(pipeline):
    from .core.batch_pipeline import CancellationToken

    token = CancellationToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel)
        handler_installed = True
    except (NotImplementedError, RuntimeError):
        handler_installed = False

    def report(progress):
        click.echo(f"Progress: {progress.completed}/{progress.total}")

    try:
        return await pipeline.summarize_all(cancel_token=token, on_progress=report)
    finally:
        if handler_installed:
            loop.remove_signal_handler(signal.SIGINT)


@cli.command()
@click.argument("bookmark_id")
@config_dir_option
def delete(bookmark_id: str, config_dir: Optional[Path]):
    """Permanently delete a bookmark."""
    from .core.bookmark_manager import BookmarkNotFoundError

    services = _load_services(config_dir)
    try:
        services.manager.delete_bookmark(bookmark_id)
    except (BookmarkNotFoundError, StorageError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Deleted {bookmark_id}")


@cli.command()
@click.option("--yes", is_flag=True, default=False, help="Do not ask for confirmation")
@config_dir_option
def clear(yes: bool, config_dir: Optional[Path]):
    """Delete all bookmarks."""
    if not yes:
        click.confirm("Delete all bookmarks? This can't be undone.", abort=True)

    services = _load_services(config_dir)
    try:
        removed = services.manager.clear_all()
    except StorageError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Deleted {removed} bookmark(s)")


@cli.command()
@config_dir_option
def doctor(config_dir: Optional[Path]):
    """Validate local setup and report actionable fixes."""
    from .config import ConfigError, ConfigManager

    cm = ConfigManager(config_dir)
    failures = 0
    app_config = None
    env_settings = None

    def report(status: str, message: str, fix: Optional[str] = None) -> None:
        click.echo(f"[{status}] {message}")
        if fix:
            click.echo(f"      Fix: {fix}")

    click.echo("=" * 60)
    click.echo("BookmarkBrain doctor")
    click.echo("=" * 60)
    click.echo(f"Config directory: {cm.config_dir}")

    if cm.config_file.exists():
        try:
            app_config = cm.load_app_config()
            report("PASS", "config.yaml parsed successfully")
        except ConfigError as e:
            failures += 1
            report("FAIL", f"config.yaml validation failed: {e}")
    else:
        failures += 1
        report("FAIL", f"Missing config file: {cm.config_file}", "Run: bookmarkbrain init")

    if cm.env_file.exists():
        try:
            env_settings = cm.load_env_settings()
            report("PASS", ".env parsed successfully")
        except ConfigError as e:
            failures += 1
            report("FAIL", f".env validation failed: {e}")
    else:
        failures += 1
        report("FAIL", f"Missing env file: {cm.env_file}", "Run: bookmarkbrain init")

    if app_config is not None and app_config.remote_summarize_url:
        report("PASS", f"Using remote summarize endpoint: {app_config.remote_summarize_url}")
    elif env_settings is not None:
        if _is_placeholder_secret(env_settings.google_api_key):
            failures += 1
            report(
                "FAIL",
                "GOOGLE_API_KEY appears unset or placeholder",
                f"Set GOOGLE_API_KEY in {cm.env_file}",
            )
        else:
            report("PASS", "GOOGLE_API_KEY looks configured")

    if app_config is not None:
        try:
            cm.validate_storage_access(app_config)
            report("PASS", f"Storage is accessible: {cm.resolve_storage_path(app_config)}")
        except ConfigError as e:
            failures += 1
            report("FAIL", f"Storage is not accessible: {e}", "Run: bookmarkbrain init")

    click.echo("-" * 60)
    click.echo(f"Summary: {failures} fail")

    sys.exit(1 if failures else 0)


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
