"""Format inference for delimited bank exports.

Guesses a ``FormatConfig`` from the first few lines of a file. The heuristic
never fails: anything it cannot determine falls back to a default, and the
result can always be overridden by the caller.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, Sequence, Union

from spendtrail.domain.entities import FormatConfig
from spendtrail.domain.errors import ValidationError
from spendtrail.utils.amount_parser import try_parse_amount
from spendtrail.utils.csv_line import parse_line
from spendtrail.utils.date_parser import is_date, parse_date_exact

logger = logging.getLogger(__name__)

SAMPLE_LINE_COUNT = 6
DEFAULT_DATE_FORMAT = "yyyy-MM-dd"

# Tried in order; the first pattern that matches shape and parses exactly wins
DATE_PATTERNS = [
    ("dd/MM/yyyy", re.compile(r"^\d{2}/\d{2}/\d{4}$")),
    ("MM/dd/yyyy", re.compile(r"^\d{2}/\d{2}/\d{4}$")),
    ("yyyy-MM-dd", re.compile(r"^\d{4}-\d{2}-\d{2}$")),
    ("dd-MM-yyyy", re.compile(r"^\d{2}-\d{2}-\d{4}$")),
    ("dd.MM.yyyy", re.compile(r"^\d{2}\.\d{2}\.\d{4}$")),
]

DetectResult = Union[FormatConfig, dict[str, Any]]


def sample_lines(sample_text: str, limit: int = SAMPLE_LINE_COUNT) -> list[str]:
    """Return up to ``limit`` leading non-blank lines of ``sample_text``."""
    lines = [line.rstrip("\r") for line in sample_text.split("\n") if line.strip()]
    return lines[:limit]


def detect_date_format(value: str) -> Optional[str]:
    """Return the first known date pattern that ``value`` matches exactly."""
    for pattern, shape in DATE_PATTERNS:
        if not shape.match(value):
            continue
        try:
            parse_date_exact(value, pattern)
        except ValueError:
            continue
        return pattern
    return None


def _detect_delimiter(first_line: str) -> str:
    commas = first_line.count(",")
    if first_line.count(";") > commas:
        return ";"
    if first_line.count("\t") > commas:
        return "\t"
    return ","


def _is_number(value: str) -> bool:
    return try_parse_amount(value) is not None


def _detect_header(fields: Sequence[str]) -> bool:
    return any(not _is_number(f) and not is_date(f) for f in fields)


class FormatInferrer(ABC):
    """Capability interface for guessing the layout of a bank export."""

    @abstractmethod
    def infer(self, sample_text: str) -> FormatConfig:
        """Return a best-guess FormatConfig for ``sample_text``."""


class HeuristicInferrer(FormatInferrer):
    """Pure, local format inference based on the first sample lines."""

    def infer(self, sample_text: str) -> FormatConfig:
        lines = sample_lines(sample_text)
        if not lines:
            return FormatConfig(
                delimiter=",",
                has_header=False,
                date_column=0,
                date_format=DEFAULT_DATE_FORMAT,
                description_column=0,
                amount_type="signed",
                amount_column=0,
            )

        first_line = lines[0]
        delimiter = _detect_delimiter(first_line)
        has_header = _detect_header(parse_line(first_line, delimiter))

        test_row = lines[1] if len(lines) > 1 else first_line
        fields = [f.strip() for f in parse_line(test_row, delimiter)]

        date_column = 0
        date_format = DEFAULT_DATE_FORMAT
        for i, value in enumerate(fields):
            detected = detect_date_format(value)
            if detected is not None:
                date_column = i
                date_format = detected
                break

        # A numeric date column is only reused if nothing else is numeric
        amount_column = 0
        for i, value in enumerate(fields):
            if _is_number(value):
                amount_column = i
                if i != date_column:
                    break

        # Longest remaining field is the most free-text-like
        description_column = 0
        max_length = 0
        for i, value in enumerate(fields):
            if i in (date_column, amount_column):
                continue
            if len(value) > max_length:
                max_length = len(value)
                description_column = i

        return FormatConfig(
            delimiter=delimiter,
            has_header=has_header,
            date_column=date_column,
            date_format=date_format,
            description_column=description_column,
            amount_type="signed",
            amount_column=amount_column,
        )


class ExternalInferrer(FormatInferrer):
    """Delegates inference to an injected external detector.

    The detector receives the sample text and returns a FormatConfig or a
    dict in the saved-format schema. Any failure, including an unusable
    result, falls back to ``fallback``.
    """

    def __init__(
        self,
        detect: Callable[[str], DetectResult],
        fallback: Optional[FormatInferrer] = None,
    ):
        self.detect = detect
        self.fallback = fallback or HeuristicInferrer()

    def infer(self, sample_text: str) -> FormatConfig:
        sample = "\n".join(sample_lines(sample_text))
        try:
            result = self.detect(sample)
            config = result if isinstance(result, FormatConfig) else FormatConfig.from_dict(result)
            config.validate()
        except Exception as e:
            logger.warning(f"External format detection failed, using heuristics: {e}")
            return self.fallback.infer(sample_text)

        logger.info(
            f"External detector chose delimiter={config.delimiter!r}, "
            f"date_format={config.date_format}"
        )
        return config


def get_inferrer(
    name: str = "heuristic", detect: Optional[Callable[[str], DetectResult]] = None
) -> FormatInferrer:
    """Select a FormatInferrer by configuration name.

    Args:
        name: "heuristic" or "external"
        detect: Detector callable, used by the external inferrer

    Raises:
        ValidationError: If the name is unknown
    """
    name = name.strip().lower()
    if name == "heuristic":
        return HeuristicInferrer()
    if name == "external":
        if detect is None:
            logger.warning("No external format detector configured, using heuristics")
            return HeuristicInferrer()
        return ExternalInferrer(detect)
    raise ValidationError(
        f"Unknown format inferrer '{name}'. Must be one of: external, heuristic"
    )


def infer_format(sample_text: str) -> FormatConfig:
    """Guess the FormatConfig of a delimited file from its leading text."""
    return HeuristicInferrer().infer(sample_text)
