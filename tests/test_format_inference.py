"""Tests for format inference."""

from decimal import Decimal

import pytest

from spendtrail.domain.entities import FormatConfig
from spendtrail.domain.errors import ValidationError
from spendtrail.domain.extraction import extract_candidates
from spendtrail.domain.format_inference import (
    ExternalInferrer,
    HeuristicInferrer,
    detect_date_format,
    get_inferrer,
    infer_format,
    sample_lines,
)


class TestDetectDateFormat:
    """Tests for date pattern detection."""

    def test_known_patterns(self):
        """Test each supported pattern."""
        assert detect_date_format("2024-01-15") == "yyyy-MM-dd"
        assert detect_date_format("15/01/2024") == "dd/MM/yyyy"
        assert detect_date_format("15-01-2024") == "dd-MM-yyyy"
        assert detect_date_format("15.01.2024") == "dd.MM.yyyy"

    def test_ambiguous_prefers_day_first(self):
        """Test that a date valid both ways is read day first."""
        assert detect_date_format("01/02/2024") == "dd/MM/yyyy"

    def test_month_first_when_day_first_impossible(self):
        """Test that 01/15/2024 can only be month first."""
        assert detect_date_format("01/15/2024") == "MM/dd/yyyy"

    def test_no_match(self):
        """Test values that are not dates."""
        assert detect_date_format("2024-13-01") is None
        assert detect_date_format("Coffee") is None
        assert detect_date_format("") is None


class TestHeuristicInferrer:
    """Tests for the heuristic inferrer."""

    def test_comma_with_header(self):
        """Test a typical comma-separated export."""
        fmt = infer_format("Date,Description,Amount\n2024-01-15,Coffee Shop,-4.50\n")

        assert fmt.delimiter == ","
        assert fmt.has_header is True
        assert fmt.date_column == 0
        assert fmt.date_format == "yyyy-MM-dd"
        assert fmt.description_column == 1
        assert fmt.amount_type == "signed"
        assert fmt.amount_column == 2

    def test_semicolon_with_decimal_comma(self):
        """Test a European export."""
        fmt = infer_format("Datum;Omschrijving;Bedrag\n15-01-2024;Jumbo;-12,40\n")

        assert fmt.delimiter == ";"
        assert fmt.has_header is True
        assert fmt.date_format == "dd-MM-yyyy"
        assert fmt.amount_column == 2
        assert fmt.description_column == 1

    def test_tab_delimited_with_columns_reordered(self):
        """Test that columns are found wherever they are."""
        fmt = infer_format("Date\tAmount\tMemo\n15/01/2024\t-3.00\tBakery\n")

        assert fmt.delimiter == "\t"
        assert fmt.date_column == 0
        assert fmt.date_format == "dd/MM/yyyy"
        assert fmt.amount_column == 1
        assert fmt.description_column == 2

    def test_headerless_numeric_first_line(self):
        """Test a first line made of numbers and dates only."""
        fmt = infer_format("2024-01-15,-4.50,100.00\n")

        assert fmt.has_header is False
        assert fmt.date_column == 0
        assert fmt.amount_column == 1

    def test_longest_remaining_field_is_description(self):
        """Test description selection among several text columns."""
        fmt = infer_format(
            "Date,Ref,Details,Amount\n2024-01-15,AB1,Card payment Bakery Jansen,-3.00\n"
        )

        assert fmt.description_column == 2
        assert fmt.amount_column == 3

    def test_date_column_reused_as_amount_only_as_last_resort(self):
        """Test that a lone numeric column is used for the amount."""
        fmt = infer_format("5,Shop\n")

        assert fmt.date_column == 0
        assert fmt.amount_column == 0
        assert fmt.description_column == 1

    def test_empty_input_uses_defaults(self):
        """Test that inference never fails on empty input."""
        for text in ("", "\n\n   \n"):
            fmt = infer_format(text)
            assert fmt.delimiter == ","
            assert fmt.has_header is False
            assert fmt.date_column == 0
            assert fmt.date_format == "yyyy-MM-dd"
            assert fmt.amount_column == 0
            fmt.validate()

    def test_round_trip(self):
        """Test that an inferred format extracts what the source format describes."""
        original = FormatConfig(
            delimiter=";",
            has_header=True,
            date_column=0,
            date_format="dd.MM.yyyy",
            description_column=1,
            amount_type="signed",
            amount_column=2,
        )
        sample = (
            "Datum;Omschrijving;Bedrag\n"
            "15.01.2024;Bakkerij de Vries;-3,75\n"
            "16.01.2024;Salaris;2500,00\n"
        )

        inferred = infer_format(sample)
        expected = extract_candidates(sample, original, set())
        actual = extract_candidates(sample, inferred, set())

        assert inferred.delimiter == ";"
        assert inferred.date_format == "dd.MM.yyyy"
        assert [(c.date, c.description, c.amount) for c in actual] == [
            (c.date, c.description, c.amount) for c in expected
        ]
        assert actual[1].amount == Decimal("2500.00")


def test_sample_lines_skips_blanks_and_limits():
    """Test sample line selection."""
    text = "a\n\n  \nb\n" + "\n".join(str(i) for i in range(10))

    lines = sample_lines(text)

    assert lines[:2] == ["a", "b"]
    assert len(lines) == 6


class TestExternalInferrer:
    """Tests for the pluggable external inferrer."""

    def test_uses_detector_result(self):
        """Test a detector returning the saved-format schema."""
        result = {
            "delimiter": ";",
            "hasHeader": False,
            "dateColumn": 1,
            "dateFormat": "dd.MM.yyyy",
            "descriptionColumn": 2,
            "amountType": "signed",
            "amountColumn": 0,
        }
        inferrer = ExternalInferrer(lambda sample: result)

        fmt = inferrer.infer("whatever")

        assert fmt == FormatConfig.from_dict(result)

    def test_detector_receives_sample_only(self):
        """Test that only the leading lines are handed over."""
        received = []

        def detect(sample):
            received.append(sample)
            return FormatConfig(amount_column=2)

        ExternalInferrer(detect).infer("\n".join(f"line {i}" for i in range(20)))

        assert received[0].splitlines() == [f"line {i}" for i in range(6)]

    def test_falls_back_on_error(self):
        """Test that a failing detector falls back to heuristics."""

        def detect(sample):
            raise RuntimeError("service unavailable")

        text = "Date,Description,Amount\n2024-01-15,Coffee Shop,-4.50\n"

        assert ExternalInferrer(detect).infer(text) == HeuristicInferrer().infer(text)

    def test_falls_back_on_unusable_result(self):
        """Test that an invalid detector result falls back to heuristics."""
        text = "Date,Description,Amount\n2024-01-15,Coffee Shop,-4.50\n"
        inferrer = ExternalInferrer(lambda sample: {"amountType": "signed", "amountColumn": None})

        assert inferrer.infer(text) == HeuristicInferrer().infer(text)


class TestGetInferrer:
    """Tests for inferrer selection."""

    def test_heuristic(self):
        """Test the default strategy."""
        assert isinstance(get_inferrer(), HeuristicInferrer)
        assert isinstance(get_inferrer("Heuristic"), HeuristicInferrer)

    def test_external(self):
        """Test the external strategy with and without a detector."""
        assert isinstance(get_inferrer("external"), HeuristicInferrer)
        assert isinstance(
            get_inferrer("external", detect=lambda s: FormatConfig(amount_column=0)),
            ExternalInferrer,
        )

    def test_unknown(self):
        """Test an unknown strategy name."""
        with pytest.raises(ValidationError, match="Unknown format inferrer"):
            get_inferrer("magic")
