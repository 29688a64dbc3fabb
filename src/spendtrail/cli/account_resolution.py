"""CLI helper for account resolution."""

from __future__ import annotations

import click
from spendtrail.domain.account import AccountService
from spendtrail.domain.entities import Account
from spendtrail.domain.errors import NotFoundError


def resolve_account_or_exit(ctx: click.Context, account: str) -> Account:
    """Resolve an account name or ID in the active profile, or exit with a CLI error.

    This keeps error messaging and exit behavior consistent across commands.
    """
    service = AccountService(ctx.obj["db"])
    try:
        return service.resolve_account(ctx.obj["profile"].id, account)
    except NotFoundError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)
