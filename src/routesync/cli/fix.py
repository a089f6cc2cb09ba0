"""routesync fix command - apply fixable mismatches after backing up."""

import click

from routesync.cli.utils import execute_audit


@click.command()
@click.pass_context
def fix_command(ctx: click.Context) -> None:
    """Correct table-name casing and approved renames in route files.

    Every rewritten file is backed up first. Mismatches without an
    authoritative target are reported for manual review. Honors
    ROUTESYNC__REWRITE__DRY_RUN.
    """
    execute_audit(ctx, dry_run=None)
