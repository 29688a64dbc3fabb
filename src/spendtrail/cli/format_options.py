"""Shared command-line options for overriding a file format."""

from typing import Any, Callable, Optional

import click
from spendtrail.domain.entities import AMOUNT_TYPES, FormatConfig

DELIMITER_NAMES = {",": ",", ";": ";", "tab": "\t", "\\t": "\t"}

OVERRIDE_KEYS = (
    "delimiter",
    "has_header",
    "date_column",
    "date_format",
    "description_column",
    "amount_type",
    "amount_column",
    "debit_column",
    "credit_column",
)


def format_override_options(func: Callable) -> Callable:
    """Add the format override options to a command.

    The decorated command receives one keyword argument per option; options
    that were not given arrive as None.
    """
    options = [
        click.option(
            "--delimiter",
            type=click.Choice(list(DELIMITER_NAMES)),
            help="Field delimiter (use 'tab' for tab-separated files)",
        ),
        click.option(
            "--header/--no-header",
            "has_header",
            default=None,
            help="Whether the first line is a header",
        ),
        click.option("--date-column", type=click.IntRange(min=0), help="Zero-based date column"),
        click.option("--date-format", help="Date pattern, e.g. dd/MM/yyyy"),
        click.option(
            "--description-column",
            type=click.IntRange(min=0),
            help="Zero-based description column",
        ),
        click.option(
            "--amount-type",
            type=click.Choice(AMOUNT_TYPES),
            help="'signed' for one amount column, 'split' for debit/credit columns",
        ),
        click.option(
            "--amount-column", type=click.IntRange(min=0), help="Zero-based amount column"
        ),
        click.option("--debit-column", type=click.IntRange(min=0), help="Zero-based debit column"),
        click.option(
            "--credit-column", type=click.IntRange(min=0), help="Zero-based credit column"
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def pop_overrides(kwargs: dict[str, Any]) -> dict[str, Any]:
    """Remove the override options from a command's kwargs, keeping given ones."""
    overrides = {key: kwargs.pop(key, None) for key in OVERRIDE_KEYS}
    if overrides["delimiter"] is not None:
        overrides["delimiter"] = DELIMITER_NAMES[overrides["delimiter"]]
    return {key: value for key, value in overrides.items() if value is not None}


def apply_overrides(
    base: Optional[FormatConfig], overrides: dict[str, Any]
) -> Optional[FormatConfig]:
    """Apply overrides to a base format, or return None when nothing was overridden."""
    if not overrides:
        return None
    return (base or FormatConfig()).with_overrides(**overrides)


def describe_format(fmt: FormatConfig) -> list[str]:
    """Render a format as indented display lines."""
    delimiter = "tab" if fmt.delimiter == "\t" else fmt.delimiter
    lines = [
        f"  Delimiter: {delimiter!r}",
        f"  Header: {'Yes' if fmt.has_header else 'No'}",
        f"  Date: column {fmt.date_column} ({fmt.date_format})",
        f"  Description: column {fmt.description_column}",
    ]
    if fmt.amount_type == "split":
        lines.append(f"  Amount: debit column {fmt.debit_column}, credit column {fmt.credit_column}")
    else:
        lines.append(f"  Amount: column {fmt.amount_column}")
    if fmt.balance_column is not None:
        lines.append(f"  Balance: column {fmt.balance_column}")
    return lines
