"""Main CLI entry point."""

import logging

import click
from spendtrail.database.factories import create_sqlite_database
from spendtrail.domain.format_inference import get_inferrer
from spendtrail.domain.profile import DEFAULT_PROFILE, ProfileService

# Import and register all commands at module level
from spendtrail.cli.commands import (
    account,
    category,
    format,
    import_cmd,
    rule,
)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides SPENDTRAIL_DB_PATH environment variable)",
    envvar="SPENDTRAIL_DB_PATH",
)
@click.option(
    "--profile",
    default=DEFAULT_PROFILE,
    show_default=True,
    help="Profile that owns accounts, categories, formats and rules",
    envvar="SPENDTRAIL_PROFILE",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity",
    envvar="SPENDTRAIL_LOG_LEVEL",
)
@click.option(
    "--inferrer",
    type=click.Choice(["heuristic", "external"], case_sensitive=False),
    default="heuristic",
    show_default=True,
    help=(
        "Strategy used to guess the format of uploaded files. 'external' needs a "
        "detector injected through the Python API; from the command line it "
        "falls back to 'heuristic' with a warning"
    ),
    envvar="SPENDTRAIL_INFERRER",
)
@click.pass_context
def cli(ctx, db_path: str | None, profile: str, log_level: str, inferrer: str):
    """Spendtrail - Bank statement import and categorization.

    Upload CSV exports from any bank, let the format be detected, preview
    the parsed transactions, and commit them with duplicates skipped and
    categorization rules applied.
    """
    ctx.ensure_object(dict)
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(levelname)s %(name)s: %(message)s",
    )

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.obj["inferrer"] = get_inferrer(inferrer)
        try:
            ctx.obj["profile"] = ProfileService(db).get_or_create_profile(profile)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)


# Register all commands
account.register_commands(cli)
category.register_commands(cli)
format.register_commands(cli)
import_cmd.register_commands(cli)
rule.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
