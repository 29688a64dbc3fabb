"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
from typing import Optional
import re


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Bank exports use either a decimal point or a decimal comma, so every
    comma is read as the decimal separator. Handles:
    - "123.45"
    - "123,45"
    - "$123.45", "€ 12,50"
    - "-123.45", "+123.45"
    - "(123.45)" (negative in parentheses)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    # Remove whitespace
    amount_str = amount_str.strip()

    # Handle parentheses notation (negative)
    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    # Remove currency symbols
    cleaned = re.sub(r"[$€£¥]", "", amount_str)

    # Decimal comma
    cleaned = cleaned.replace(",", ".")

    # Remove whitespace again, including between sign and digits
    cleaned = re.sub(r"\s+", "", cleaned)

    try:
        amount = Decimal(cleaned)
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Could not parse amount '{amount_str}': {e!r}")

    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}': not a finite number")

    if is_negative:
        amount = -amount
    return amount


def try_parse_amount(amount_str: Optional[str]) -> Optional[Decimal]:
    """Parse an amount, returning None instead of raising."""
    if amount_str is None:
        return None
    try:
        return parse_amount(amount_str)
    except ValueError:
        return None
