"""Utility functions for spendtrail."""

from spendtrail.utils.date_parser import parse_date, parse_date_exact
from spendtrail.utils.amount_parser import parse_amount
from spendtrail.utils.csv_line import parse_line

__all__ = ["parse_date", "parse_date_exact", "parse_amount", "parse_line"]
