"""Transaction extraction and duplicate fingerprinting.

Turns raw file bytes plus a resolved FormatConfig into TransactionCandidate
objects. Each row is parsed independently: a row that fails is logged,
reported and skipped, and never stops the rest of the batch.
"""

import hashlib
import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import AbstractSet, Callable, Iterator, Optional, Sequence, Union

from spendtrail.domain.entities import FormatConfig, TransactionCandidate
from spendtrail.utils.amount_parser import parse_amount, try_parse_amount
from spendtrail.utils.csv_line import parse_line
from spendtrail.utils.date_parser import parse_date_with_fallback

logger = logging.getLogger(__name__)

HASH_LENGTH = 16
_CENTS = Decimal("0.01")

StopSignal = Optional[Callable[[], bool]]


def compute_hash(txn_date: date, amount: Decimal, description: str) -> str:
    """Compute the duplicate fingerprint of a transaction.

    The fingerprint depends only on the date, the amount rounded to cents and
    the upper-cased description, so the same bank row always yields the same
    value regardless of when or in which file it is seen.

    Args:
        txn_date: Transaction date
        amount: Signed amount
        description: Description text

    Returns:
        Upper-case hex string of HASH_LENGTH characters
    """
    cents = Decimal(amount).quantize(_CENTS, rounding=ROUND_HALF_UP)
    if cents == 0:
        cents = abs(cents)
    payload = f"{txn_date:%Y-%m-%d}|{cents:.2f}|{(description or '').upper()}"
    digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()
    return digest[:HASH_LENGTH].upper()


def decode_lines(data: Union[bytes, str]) -> list[str]:
    """Decode file content and return its non-blank lines.

    Lines end at ``\\n`` (a preceding ``\\r`` is dropped); other Unicode line
    separators stay part of the field text. A UTF-8 byte order mark is
    removed and undecodable bytes are replaced so that one bad byte only
    affects the row containing it.
    """
    if isinstance(data, bytes):
        text = data.decode("utf-8-sig", errors="replace")
    else:
        text = data.lstrip("\ufeff")
    return [line.rstrip("\r") for line in text.split("\n") if line.strip()]


def _column(fields: Sequence[str], index: Optional[int], label: str) -> str:
    if index is None:
        raise ValueError(f"No {label} column configured")
    if index >= len(fields):
        raise ValueError(
            f"Missing {label} column {index} (row has {len(fields)} columns)"
        )
    return fields[index]


def _split_value(fields: Sequence[str], index: Optional[int]) -> Decimal:
    if index is None or index >= len(fields):
        return Decimal("0")
    value = try_parse_amount(fields[index])
    return value if value is not None else Decimal("0")


def parse_amount_fields(fields: Sequence[str], fmt: FormatConfig) -> Decimal:
    """Read the signed amount of a row according to ``fmt.amount_type``.

    Split layouts default a missing or unparsable side to zero and return
    credit minus debit.

    Raises:
        ValueError: If a signed amount is missing or unparsable
    """
    if fmt.amount_type == "split":
        debit = _split_value(fields, fmt.debit_column)
        credit = _split_value(fields, fmt.credit_column)
        return credit - debit

    return parse_amount(_column(fields, fmt.amount_column, "amount"))


def parse_row(line: str, fmt: FormatConfig, row_number: int = 0) -> TransactionCandidate:
    """Parse one raw line into a candidate.

    Raises:
        ValueError: If the date, description or amount cannot be extracted
    """
    fields = parse_line(line, fmt.delimiter)
    txn_date = parse_date_with_fallback(
        _column(fields, fmt.date_column, "date"), fmt.date_format
    )
    description = _column(fields, fmt.description_column, "description").strip()
    amount = parse_amount_fields(fields, fmt)

    return TransactionCandidate(
        date=txn_date,
        description=description,
        amount=amount,
        duplicate_hash=compute_hash(txn_date, amount, description),
        row_number=row_number,
    )


def _iter_rows(
    data: Union[bytes, str],
    fmt: FormatConfig,
    errors: Optional[list[str]],
    should_stop: StopSignal,
) -> Iterator[TransactionCandidate]:
    lines = decode_lines(data)
    start = 1 if fmt.has_header else 0

    for index in range(start, len(lines)):
        if should_stop is not None and should_stop():
            logger.info(f"Extraction stopped before row {index + 1}")
            return

        row_number = index + 1
        try:
            yield parse_row(lines[index], fmt, row_number)
        except Exception as e:
            logger.warning(f"Skipping row {row_number}: {e}")
            if errors is not None:
                errors.append(f"Row {row_number}: {e}")


def extract_candidates(
    data: Union[bytes, str],
    fmt: FormatConfig,
    existing_hashes: AbstractSet[str],
    *,
    errors: Optional[list[str]] = None,
    should_stop: StopSignal = None,
) -> list[TransactionCandidate]:
    """Parse a file for preview, flagging duplicates without dropping them.

    A candidate is a duplicate when its fingerprint is already stored or
    appeared on an earlier row of the same file.

    Args:
        data: Raw file content
        fmt: Resolved format
        existing_hashes: Fingerprints already stored for the account
        errors: Optional list that receives "Row N: reason" messages
        should_stop: Optional callable checked between rows

    Returns:
        Candidates in file order, each with ``is_duplicate`` set
    """
    seen: set[str] = set()
    candidates = []
    for candidate in _iter_rows(data, fmt, errors, should_stop):
        is_duplicate = (
            candidate.duplicate_hash in existing_hashes
            or candidate.duplicate_hash in seen
        )
        seen.add(candidate.duplicate_hash)
        if is_duplicate:
            candidate = replace(candidate, is_duplicate=True)
        candidates.append(candidate)
    return candidates


def extract_for_commit(
    data: Union[bytes, str],
    fmt: FormatConfig,
    existing_hashes: AbstractSet[str],
    skip_duplicates: bool = True,
    *,
    errors: Optional[list[str]] = None,
    should_stop: StopSignal = None,
) -> list[TransactionCandidate]:
    """Parse a file for commit.

    With ``skip_duplicates`` the candidates whose fingerprint is stored, or
    already appeared earlier in the file, are left out. Without it every
    parsed row is returned.

    Args:
        data: Raw file content
        fmt: Resolved format
        existing_hashes: Fingerprints already stored for the account
        skip_duplicates: Omit duplicate candidates
        errors: Optional list that receives "Row N: reason" messages
        should_stop: Optional callable checked between rows

    Returns:
        Candidates to persist, in file order
    """
    seen: set[str] = set()
    candidates = []
    for candidate in _iter_rows(data, fmt, errors, should_stop):
        if skip_duplicates and (
            candidate.duplicate_hash in existing_hashes
            or candidate.duplicate_hash in seen
        ):
            continue
        seen.add(candidate.duplicate_hash)
        candidates.append(candidate)
    return candidates
