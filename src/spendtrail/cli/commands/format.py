"""Import format commands."""

import click
from spendtrail.cli.error_handling import handle_domain_error
from spendtrail.cli.format_options import (
    apply_overrides,
    describe_format,
    format_override_options,
    pop_overrides,
)
from spendtrail.domain.csv_import import CSVImportService
from spendtrail.domain.errors import DomainError
from spendtrail.domain.import_format import ImportFormatService


@click.group()
def format_group():
    """Detect and manage import formats."""
    pass


@format_group.command("detect")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def detect_format(ctx, csv_file: str):
    """Guess the format of a CSV file without importing it."""
    service = CSVImportService(ctx.obj["db"], inferrer=ctx.obj["inferrer"])

    with open(csv_file, "rb") as f:
        data = f.read()

    try:
        fmt, sample, _ = service.analyze(data)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo("\nDetected format:")
    for line in describe_format(fmt):
        click.echo(line)
    if sample:
        click.echo("\nSample:")
        for line in sample:
            click.echo(f"  {line}")


@format_group.command("save")
@click.argument("name")
@click.option(
    "--from-file",
    type=click.Path(exists=True, dir_okay=False),
    help="Detect the format from this file; override options are applied on top",
)
@click.option("--bank", help="Bank this format belongs to")
@format_override_options
@click.pass_context
def save_format(ctx, name: str, from_file: str | None, bank: str | None, **kwargs):
    """Save a format for reuse with 'import upload --format'.

    Examples:
        spendtrail format save "ING" --from-file export.csv
        spendtrail format save "Rabo" --delimiter ";" --date-format dd-MM-yyyy --amount-column 2
    """
    overrides = pop_overrides(kwargs)
    service = ImportFormatService(ctx.obj["db"])

    base = None
    if from_file is not None:
        with open(from_file, "rb") as f:
            data = f.read()
        base, _, _ = CSVImportService(ctx.obj["db"], inferrer=ctx.obj["inferrer"]).analyze(data)
    elif not overrides:
        click.echo("Error: Provide --from-file or at least one format option", err=True)
        ctx.exit(1)

    try:
        config = apply_overrides(base, overrides) or base
        format_id = service.create_format(
            ctx.obj["profile"].id, name, config, bank_name=bank
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Saved import format '{name}' (ID: {format_id})")
    for line in describe_format(config):
        click.echo(line)


@format_group.command("list")
@click.pass_context
def list_formats(ctx):
    """List saved import formats."""
    service = ImportFormatService(ctx.obj["db"])

    formats = service.list_formats(ctx.obj["profile"].id)
    if not formats:
        click.echo("No import formats found.")
        return

    click.echo("\nImport Formats:")
    click.echo("-" * 60)
    for fmt in formats:
        bank = f", Bank: {fmt.bank_name}" if fmt.bank_name else ""
        click.echo(f"{fmt.name} (ID: {fmt.id}{bank})")
        for line in describe_format(fmt.config):
            click.echo(f"  {line}")


@format_group.command("delete")
@click.argument("name")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_format(ctx, name: str, yes: bool) -> None:
    """Delete a saved import format.

    Examples:
        spendtrail format delete "ING"
    """
    service = ImportFormatService(ctx.obj["db"])

    if not yes and not click.confirm(f"Are you sure you want to delete format '{name}'?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_format(ctx.obj["profile"].id, name)
        click.echo(f"Deleted format '{name}'")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register format commands with main CLI."""
    cli.add_command(format_group, name="format")
