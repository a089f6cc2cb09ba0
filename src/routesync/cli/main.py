"""routesync CLI - route-to-schema consistency checks."""

import click

from routesync.cli.check import check_command
from routesync.cli.fix import fix_command
from routesync.cli.routes import routes_command
from routesync.core.logging import configure_logging, set_run_id


@click.group()
@click.version_option(version="0.1.0", prog_name="routesync")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """routesync - keep route handlers consistent with the live database schema."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    set_run_id()
    configure_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(check_command, name="check")
cli.add_command(fix_command, name="fix")
cli.add_command(routes_command, name="routes")


if __name__ == "__main__":
    cli()
