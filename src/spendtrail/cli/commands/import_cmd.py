"""CSV import commands."""

import os

import click
from spendtrail.cli.account_resolution import resolve_account_or_exit
from spendtrail.cli.error_handling import handle_domain_error
from spendtrail.cli.format_options import (
    apply_overrides,
    describe_format,
    format_override_options,
    pop_overrides,
)
from spendtrail.domain.csv_import import CSVImportService
from spendtrail.domain.errors import DomainError, NotFoundError, import_format_not_found
from spendtrail.domain.import_format import ImportFormatService


def _echo_errors(errors: list[str]) -> None:
    if errors:
        click.echo(f"  Errors: {len(errors)}")
        for error in errors:
            click.echo(f"    {error}", err=True)


def _session_format(ctx, service: CSVImportService, session_id: int, overrides: dict):
    """Build the override format for a stored session, or None when nothing was given."""
    if not overrides:
        return None
    try:
        session = service.get_session(session_id)
        return apply_overrides(session.format_config, overrides)
    except DomainError as e:
        handle_domain_error(ctx, e)


@click.group()
def import_group():
    """Upload, preview and confirm CSV imports."""
    pass


@import_group.command("upload")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--account", required=True, help="Account name or ID")
@click.option("--format", "format_name", help="Saved import format name (skips detection)")
@format_override_options
@click.pass_context
def upload(ctx, csv_file: str, account: str, format_name: str | None, **kwargs):
    """Upload a CSV file as a pending import.

    The format is detected from the first lines unless --format names a saved
    format. Format options override single fields of whichever was chosen.

    Examples:
        spendtrail import upload export.csv --account Checking
        spendtrail import upload export.csv --account Checking --format ING
        spendtrail import upload export.csv --account 1 --no-header --date-format dd/MM/yyyy
    """
    overrides = pop_overrides(kwargs)
    db = ctx.obj["db"]
    service = CSVImportService(db, inferrer=ctx.obj["inferrer"])
    acc = resolve_account_or_exit(ctx, account)

    with open(csv_file, "rb") as f:
        data = f.read()

    try:
        format_override = None
        if overrides:
            if format_name is not None:
                saved = ImportFormatService(db).get_format_by_name(acc.profile_id, format_name)
                if saved is None:
                    raise NotFoundError(import_format_not_found(format_name))
                base = saved.config
            else:
                base, _, _ = service.analyze(data)
            format_override = apply_overrides(base, overrides)

        result = service.upload(
            account_id=acc.id,
            filename=os.path.basename(csv_file),
            data=data,
            format_override=format_override,
            format_name=format_name,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    session = result.session
    click.echo(f"Uploaded '{session.filename}' as import session {session.id}")
    click.echo(f"  Lines: {session.row_count}")
    click.echo("\nFormat:")
    for line in describe_format(session.format_config):
        click.echo(line)
    click.echo(f"\nRun 'import preview {session.id}' to review, 'import confirm {session.id}' to import.")


@import_group.command("preview")
@click.argument("session_id", type=int)
@click.option("--limit", type=int, default=20, show_default=True, help="Rows to show (0 for all)")
@format_override_options
@click.pass_context
def preview(ctx, session_id: int, limit: int, **kwargs):
    """Show the transactions a pending import would create."""
    overrides = pop_overrides(kwargs)
    service = CSVImportService(ctx.obj["db"], inferrer=ctx.obj["inferrer"])
    format_override = _session_format(ctx, service, session_id, overrides)

    try:
        result = service.preview(session_id, format_override=format_override)
    except DomainError as e:
        handle_domain_error(ctx, e)

    candidates = result.candidates if limit <= 0 else result.candidates[:limit]
    click.echo(f"\nImport session {session_id}:")
    click.echo("-" * 80)
    for c in candidates:
        dup = " (duplicate)" if c.is_duplicate else ""
        click.echo(
            f"{c.row_number:4d} | {c.date.isoformat()} | {c.amount:>12} | {c.description[:40]}{dup}"
        )
    if len(candidates) < len(result.candidates):
        click.echo(f"... {len(result.candidates) - len(candidates)} more")

    click.echo(f"\n  Parsed: {len(result.candidates)} transactions")
    click.echo(f"  Duplicates: {result.duplicate_count}")
    _echo_errors(result.errors)


@import_group.command("confirm")
@click.argument("session_id", type=int)
@click.option(
    "--keep-duplicates",
    is_flag=True,
    help="Import rows even when an identical transaction already exists",
)
@format_override_options
@click.pass_context
def confirm(ctx, session_id: int, keep_duplicates: bool, **kwargs):
    """Import the transactions of a pending session."""
    overrides = pop_overrides(kwargs)
    service = CSVImportService(ctx.obj["db"], inferrer=ctx.obj["inferrer"])
    format_override = _session_format(ctx, service, session_id, overrides)

    try:
        result = service.confirm(
            session_id,
            format_override=format_override,
            skip_duplicates=not keep_duplicates,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo("\nImport complete:")
    click.echo(f"  Imported: {result.imported} transactions")
    click.echo(f"  Skipped: {result.skipped} duplicates")
    click.echo(f"  Categorized: {result.categorized}")
    _echo_errors(result.errors)


@import_group.command("sessions")
@click.option("--account", required=True, help="Account name or ID")
@click.pass_context
def list_sessions(ctx, account: str):
    """List import sessions of an account."""
    service = CSVImportService(ctx.obj["db"])
    acc = resolve_account_or_exit(ctx, account)

    sessions = service.list_sessions(acc.id)
    if not sessions:
        click.echo("No import sessions found.")
        return

    click.echo(f"\nImport sessions for '{acc.name}':")
    click.echo("-" * 60)
    for s in sessions:
        click.echo(
            f"ID: {s.id:3d} | {s.status.value:10s} | {s.filename} ({s.row_count} lines)"
        )
        if s.error_message:
            click.echo(f"      {s.error_message}")


def register_commands(cli):
    """Register import commands with main CLI."""
    cli.add_command(import_group, name="import")
