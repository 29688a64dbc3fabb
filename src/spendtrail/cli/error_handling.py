"""CLI error handling helpers."""

import logging

import click

logger = logging.getLogger(__name__)


def handle_domain_error(ctx: click.Context, error: ValueError) -> None:
    """Print ``Error: <message>`` to stderr and exit with status 1."""
    logger.debug(f"{ctx.command_path} failed: {error!r}")
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)
