"""Date parsing utilities."""

import re
from datetime import date, datetime
from typing import Optional

from dateutil import parser as date_parser

# Pattern tokens (as saved in import formats) to strptime directives,
# longest first so "yyyy" wins over "yy"
_PATTERN_TOKENS = [
    ("yyyy", "%Y"),
    ("yy", "%y"),
    ("MMMM", "%B"),
    ("MMM", "%b"),
    ("MM", "%m"),
    ("M", "%m"),
    ("dd", "%d"),
    ("d", "%d"),
    ("HH", "%H"),
    ("mm", "%M"),
    ("ss", "%S"),
]
_TOKEN_RE = re.compile("|".join(token for token, _ in _PATTERN_TOKENS))
_TOKEN_MAP = dict(_PATTERN_TOKENS)


def to_strptime_format(pattern: str) -> str:
    """Convert a date pattern such as ``dd/MM/yyyy`` to ``%d/%m/%Y``.

    Characters that are not pattern tokens are kept literally, with ``%``
    escaped.
    """
    result = []
    pos = 0
    for match in _TOKEN_RE.finditer(pattern):
        result.append(pattern[pos:match.start()].replace("%", "%%"))
        result.append(_TOKEN_MAP[match.group(0)])
        pos = match.end()
    result.append(pattern[pos:].replace("%", "%%"))
    return "".join(result)


def parse_date_exact(date_str: str, pattern: str) -> date:
    """Parse a date string that must match ``pattern`` exactly.

    Args:
        date_str: Date string (surrounding whitespace is ignored)
        pattern: Date pattern such as ``yyyy-MM-dd`` or ``dd.MM.yyyy``

    Returns:
        Date object

    Raises:
        ValueError: If the string does not match the pattern
    """
    return datetime.strptime(date_str.strip(), to_strptime_format(pattern)).date()


def parse_date(date_str: str) -> date:
    """Parse a date string in any common absolute format.

    Args:
        date_str: Date string in various formats

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip()
    if not date_str:
        raise ValueError("Empty date string")

    try:
        dt = date_parser.parse(date_str)
        return dt.date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def parse_date_with_fallback(date_str: str, pattern: Optional[str]) -> date:
    """Parse with ``pattern`` first, then fall back to generic parsing.

    Raises:
        ValueError: If neither parse succeeds
    """
    if pattern:
        try:
            return parse_date_exact(date_str, pattern)
        except ValueError:
            pass
    try:
        return parse_date(date_str)
    except ValueError:
        raise ValueError(f"Could not parse date: '{date_str.strip()}'") from None


def is_date(value: str) -> bool:
    """Return True if ``value`` parses as a date with the generic parser."""
    try:
        parse_date(value)
    except ValueError:
        return False
    return True
