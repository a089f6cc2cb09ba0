"""Report rendering: console summary and JSON artifact."""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from routesync.audit.models import AuditReport, FileReport
from routesync.core.progress import get_console, pluralize
from routesync.scan.models import RouteManifest


def _display_name(report: FileReport, routes_dir: str) -> str:
    path = Path(report.path)
    try:
        return escape(str(path.relative_to(routes_dir)))
    except ValueError:
        return escape(str(path))


def _heading(report: FileReport, routes_dir: str) -> str:
    """File name with the tables it references."""
    name = _display_name(report, routes_dir)
    if not report.tables:
        return f"  {name}"
    return f"  {name} [dim](tables: {escape(', '.join(report.tables))})[/dim]"


def render_report(report: AuditReport, console: Console | None = None) -> None:
    """Print the per-file summary grouped by outcome.

    Every file is listed with the tables it references, unchanged files included.
    """
    console = console or get_console()
    dry = report.dry_run

    console.print(
        f"Schema: [cyan]{escape(report.schema_source)}[/cyan] "
        f"({pluralize(report.table_count, 'table')}), "
        f"{pluralize(len(report.files), 'route file')} scanned"
        + (" [dim](dry run)[/dim]" if dry else ""),
        highlight=False,
    )

    fixed = [f for f in report.files if f.applied and f.error is None]
    flagged = report.by_status("flagged")
    errors = report.by_status("error")
    unchanged = report.by_status("unchanged")

    if fixed:
        title = "would be fixed automatically" if dry else "fixed automatically"
        console.print(f"\n[green]✓[/green] [bold]{title}[/bold] ({len(fixed)})")
        for f in fixed:
            console.print(_heading(f, report.routes_dir), highlight=False)
            for fix in f.applied:
                console.print(
                    f"    {fix.kind.value}: {escape(fix.name)} -> {escape(fix.canonical)} "
                    f"[dim]({pluralize(fix.occurrences, 'occurrence')})[/dim]",
                    highlight=False,
                )
            if f.backup_path:
                console.print(f"    [dim]backup: {escape(f.backup_path)}[/dim]", highlight=False)

    if flagged:
        console.print(f"\n[yellow]![/yellow] [bold]flagged, needs manual review[/bold] ({len(flagged)})")
        for f in flagged:
            console.print(_heading(f, report.routes_dir), highlight=False)
            for m in f.flagged:
                where = f" in {escape(m.table)}" if m.table else ""
                hint = f" -> {escape(m.canonical)}" if m.canonical else ""
                console.print(
                    f"    line {m.line}: {m.kind.value} {escape(m.name)}{where}{hint}",
                    highlight=False,
                )

    if errors:
        console.print(f"\n[red]✗[/red] [bold]error processing file[/bold] ({len(errors)})")
        for f in errors:
            assert f.error is not None
            console.print(
                f"  {_display_name(f, report.routes_dir)}: "
                f"[red][{f.error['code']}] {escape(f.error['error'])}[/red] {escape(f.error['message'])}",
                highlight=False,
            )

    if unchanged:
        console.print(
            f"\n[dim]{pluralize(len(unchanged), 'file')} unchanged, no changes needed[/dim]",
            highlight=False,
        )
        for f in unchanged:
            console.print(_heading(f, report.routes_dir), highlight=False)


def write_json_report(report: AuditReport, path: Path) -> Path:
    """Write the machine-readable report; returns the path written."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report.to_dict(), indent=2) + "\n", encoding="utf-8")
    return path


def make_manifest_table(manifests: Iterable[RouteManifest]) -> Table:
    """One row per declared operation."""
    table = Table(box=None, padding=(0, 1), pad_edge=False)
    table.add_column("resource", style="cyan")
    table.add_column("method", style="bold")
    table.add_column("path")
    table.add_column("line", justify="right", style="dim")

    for manifest in manifests:
        if not manifest.operations:
            table.add_row(escape(manifest.resource), "-", "[dim]no routes declared[/dim]", "")
            continue
        for op in manifest.operations:
            table.add_row(escape(manifest.resource), op.method, escape(op.path), str(op.line))
    return table
