"""routesync check command - report mismatches without writing."""

import click

from routesync.cli.utils import execute_audit


@click.command()
@click.pass_context
def check_command(ctx: click.Context) -> None:
    """Report schema mismatches in the route directory.

    Nothing is written: fixes the policy would apply are listed as
    "would be fixed automatically".
    """
    execute_audit(ctx, dry_run=True)
