"""CLI utilities."""

import sys
from pathlib import Path

import click

from routesync.audit import render_report, run_audit, write_json_report
from routesync.config import RouteSyncConfig, load_config
from routesync.core.errors import ConfigError, SchemaFetchError
from routesync.core.logging import configure_logging
from routesync.core.progress import spinner, status


def load_cli_config(ctx: click.Context) -> RouteSyncConfig:
    """Load configuration from the working directory and apply its logging.

    Raises:
        click.UsageError: The configuration is invalid (exit code 2).
    """
    try:
        config = load_config(Path.cwd())
    except ConfigError as e:
        raise click.UsageError(str(e)) from e

    if ctx.obj and ctx.obj.get("verbose"):
        config.logging.level = "DEBUG"
    configure_logging(config=config.logging)
    return config


def execute_audit(ctx: click.Context, *, dry_run: bool | None) -> None:
    """Shared body of ``check`` and ``fix``.

    Exits 0 once every file has been processed, whatever was found;
    1 when the schema cannot be fetched; 2 on configuration errors.
    """
    config = load_cli_config(ctx)
    project_root = Path.cwd()

    try:
        with spinner("Auditing route files"):
            report = run_audit(config, project_root=project_root, dry_run=dry_run)
    except ConfigError as e:
        raise click.UsageError(str(e)) from e
    except SchemaFetchError as e:
        status(f"Schema fetch failed: {e}", style="error")
        sys.exit(1)

    render_report(report)

    if config.report.json_path:
        json_path = Path(config.report.json_path).expanduser()
        if not json_path.is_absolute():
            json_path = project_root / json_path
        write_json_report(report, json_path)
        status(f"Report written to {json_path}", style="success")
