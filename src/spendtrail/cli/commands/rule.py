"""Categorization rule commands."""

from datetime import date
from decimal import Decimal

import click
from spendtrail.cli.error_handling import handle_domain_error
from spendtrail.domain.errors import DomainError
from spendtrail.domain.rule_service import RuleService
from spendtrail.domain.rules import validate_rule_document
from spendtrail.utils.amount_parser import parse_amount
from spendtrail.utils.date_parser import parse_date_exact


@click.group()
def rule_group():
    """Manage categorization rules."""
    pass


@rule_group.command("add")
@click.argument("name")
@click.argument("rule_file", type=click.File("r", encoding="utf-8"))
@click.option("--priority", type=int, help="Evaluation priority, lower first (default: from the file, or 0)")
@click.option("--inactive", is_flag=True, help="Store the rule without using it")
@click.pass_context
def add_rule(ctx, name: str, rule_file, priority: int | None, inactive: bool):
    """Add a rule from a TOML file.

    Example rule file:

    \b
        name = "Groceries"
        category = "Groceries"
        tags = ["food"]
        [match.description]
        contains = ["albert heijn", "jumbo"]
    """
    service = RuleService(ctx.obj["db"])

    try:
        rule_id = service.create_rule(
            ctx.obj["profile"].id,
            name,
            rule_file.read(),
            priority=priority,
            is_active=not inactive,
        )
        click.echo(f"Created rule '{name}' (ID: {rule_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@rule_group.command("validate")
@click.argument("rule_file", type=click.File("r", encoding="utf-8"))
@click.pass_context
def validate_rule(ctx, rule_file):
    """Check a TOML rule file without storing it."""
    result = validate_rule_document(rule_file.read())
    if result.is_valid:
        click.echo("Rule is valid")
    else:
        click.echo(f"Invalid rule: {result.error_message}", err=True)
        ctx.exit(1)


@rule_group.command("list")
@click.pass_context
def list_rules(ctx):
    """List rules in evaluation order."""
    service = RuleService(ctx.obj["db"])

    rules = service.list_rules(ctx.obj["profile"].id)
    if not rules:
        click.echo("No rules found.")
        return

    click.echo("\nRules:")
    click.echo("-" * 60)
    for r in rules:
        state = "" if r.is_active else " (inactive)"
        click.echo(f"ID: {r.id:3d} | Priority: {r.priority:4d} | {r.name}{state}")


@rule_group.command("delete")
@click.argument("rule_id", type=int)
@click.pass_context
def delete_rule(ctx, rule_id: int):
    """Delete a rule."""
    service = RuleService(ctx.obj["db"])

    try:
        service.delete_rule(rule_id)
        click.echo(f"Deleted rule {rule_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@rule_group.command("test")
@click.option("--description", required=True, help="Transaction description")
@click.option("--amount", required=True, help="Transaction amount, e.g. -12.50")
@click.option("--date", "txn_date", help="Transaction date (YYYY-MM-DD, default: today)")
@click.pass_context
def test_rule(ctx, description: str, amount: str, txn_date: str | None):
    """Show which rule would categorize a transaction."""
    service = RuleService(ctx.obj["db"])

    try:
        value: Decimal = parse_amount(amount)
        when = parse_date_exact(txn_date, "yyyy-MM-dd") if txn_date else date.today()
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    match = service.test_rules(ctx.obj["profile"].id, description, value, when)
    if match is None:
        click.echo("No rule matched")
        return

    click.echo(f"Matched rule '{match.rule_name}'")
    click.echo(f"  Category: {match.category or '(none)'}")
    if match.tags:
        click.echo(f"  Tags: {', '.join(match.tags)}")


@rule_group.command("apply")
@click.option("--all", "all_transactions", is_flag=True, help="Recategorize transactions that already have a category")
@click.pass_context
def apply_rules(ctx, all_transactions: bool):
    """Run the active rules over stored transactions."""
    service = RuleService(ctx.obj["db"])

    updated = service.apply_rules(
        ctx.obj["profile"].id, only_uncategorized=not all_transactions
    )
    click.echo(f"Updated {updated} transactions")


def register_commands(cli):
    """Register rule commands with main CLI."""
    cli.add_command(rule_group, name="rule")
