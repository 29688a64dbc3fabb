"""Tests for the categorization rule engine."""

import time
from datetime import date, datetime, UTC
from decimal import Decimal

import pytest

from spendtrail.domain.entities import Rule, Transaction, TransactionCandidate
from spendtrail.domain.errors import RuleSyntaxError
from spendtrail.domain.rules import (
    REGEX_TIMEOUT_SECONDS,
    MatchBlock,
    apply_rules_to_batch,
    evaluate_rules,
    merge_tags,
    parse_rule_document,
    validate_rule_document,
)

GROCERIES = """
name = "Groceries"
category = "Groceries"
tags = ["food"]

[match.description]
contains = ["albert heijn", "jumbo"]
"""

CARD_SPEND = """
name = "Card spend"
category = "Eating Out"

[match.description]
contains = ["shop"]

[match.amount]
less_than = 0
"""


def make_rule(document, priority=0, name=None, is_active=True, rule_id=1):
    return Rule(
        id=rule_id,
        profile_id=1,
        name=name or f"rule {rule_id}",
        priority=priority,
        rule_document=document,
        is_active=is_active,
        created_at=datetime.now(UTC),
    )


def make_txn(description, amount="-10.00", txn_date=date(2024, 1, 15), category_id=None, tags=(), txn_id=1):
    return Transaction(
        id=txn_id,
        account_id=1,
        date=txn_date,
        amount=Decimal(amount),
        description=description,
        duplicate_hash=None,
        category_id=category_id,
        tags=tuple(tags),
        notes=None,
        imported_at=datetime.now(UTC),
    )


def simple_rule(match_toml, category="Target"):
    return f'name = "r"\ncategory = "{category}"\n{match_toml}'


class TestParseRuleDocument:
    """Tests for rule parsing."""

    def test_root_layout(self):
        """Test a rule given at the document root."""
        parsed = parse_rule_document(GROCERIES)

        assert parsed.name == "Groceries"
        assert parsed.category == "Groceries"
        assert parsed.tags == ("food",)
        assert parsed.priority == 0
        assert parsed.match.description.contains == ("albert heijn", "jumbo")
        assert parsed.match.amount is None
        assert parsed.match.date is None

    def test_rule_table_and_array_layouts(self):
        """Test [rule] and [[rules]] wrappers."""
        table = parse_rule_document(
            '[rule]\nname = "A"\npriority = 5\n[rule.match.amount]\nequals = 10\n'
        )
        array = parse_rule_document(
            '[[rules]]\nname = "A"\npriority = 5\n[rules.match.amount]\nequals = 10\n'
        )

        assert table == array
        assert table.priority == 5
        assert table.match.amount.equals == Decimal("10")

    def test_malformed_toml(self):
        """Test a syntax error."""
        with pytest.raises(RuleSyntaxError, match="Failed to parse rule"):
            parse_rule_document("name = ")

    def test_unknown_condition(self):
        """Test that typos in condition names are rejected."""
        with pytest.raises(RuleSyntaxError, match="Unknown description condition"):
            parse_rule_document(simple_rule('[match.description]\ncontain = "x"'))

    def test_wrong_types(self):
        """Test value type checks."""
        with pytest.raises(RuleSyntaxError, match="must be a number"):
            parse_rule_document(simple_rule('[match.amount]\nequals = "ten"'))
        with pytest.raises(RuleSyntaxError, match="'priority' must be an integer"):
            parse_rule_document('name = "r"\npriority = "high"')
        with pytest.raises(RuleSyntaxError, match="list of strings"):
            parse_rule_document('name = "r"\ntags = [1, 2]')

    def test_invalid_range(self):
        """Test range bounds checks."""
        with pytest.raises(RuleSyntaxError, match="greater than maximum"):
            parse_rule_document(simple_rule("[match.amount]\nrange = [10, 5]"))
        with pytest.raises(RuleSyntaxError, match="two numbers"):
            parse_rule_document(simple_rule("[match.amount]\nrange = [10]"))

    def test_date_bounds(self):
        """Test day ranges."""
        with pytest.raises(RuleSyntaxError, match="between 1 and 7"):
            parse_rule_document(simple_rule("[match.date]\nday_of_week = 8"))
        with pytest.raises(RuleSyntaxError, match="between 1 and 31"):
            parse_rule_document(simple_rule("[match.date]\nday_of_month = 0"))

    def test_invalid_regex(self):
        """Test that a broken pattern is a syntax error."""
        with pytest.raises(RuleSyntaxError, match="Invalid regex"):
            parse_rule_document(simple_rule("[match.description]\nregex = '('"))

    def test_empty_group_is_absent(self):
        """Test that a group without conditions does not count."""
        parsed = parse_rule_document(simple_rule("[match.description]\ncontains = []"))

        assert parsed.match.is_empty


class TestValidateRuleDocument:
    """Tests for rule validation."""

    def test_valid(self):
        """Test a complete rule."""
        result = validate_rule_document(GROCERIES)

        assert result.is_valid
        assert result.error_message is None

    def test_missing_name(self):
        """Test a rule without a name."""
        result = validate_rule_document('[match.amount]\nequals = 1')

        assert not result.is_valid
        assert result.error_message == "Rule must have a name"

    def test_no_conditions(self):
        """Test a rule without any matcher group."""
        result = validate_rule_document('name = "Nothing"\ncategory = "X"')

        assert not result.is_valid
        assert result.error_message == "Rule must have at least one match condition"

    def test_syntax_error_is_returned(self):
        """Test that parse errors are returned, not raised."""
        result = validate_rule_document("this is not toml")

        assert not result.is_valid
        assert result.error_message.startswith("Failed to parse rule")


class TestMatchers:
    """Tests for matcher semantics."""

    def _matches(self, match_toml, txn):
        return parse_rule_document(simple_rule(match_toml)).match.matches(txn)

    def test_contains_is_any(self):
        """Test OR semantics within contains."""
        match = '[match.description]\ncontains = ["A", "B"]'

        assert self._matches(match, make_txn("xx a yy"))
        assert self._matches(match, make_txn("only B"))
        assert not self._matches(match, make_txn("neither"))

    def test_groups_are_all(self):
        """Test AND semantics across groups."""
        parsed = parse_rule_document(CARD_SPEND)

        assert parsed.match.matches(make_txn("Coffee Shop", "-4.50"))
        assert not parsed.match.matches(make_txn("Coffee Shop", "4.50"))
        assert not parsed.match.matches(make_txn("Bakery", "-4.50"))

    def test_conditions_within_group_are_all(self):
        """Test AND semantics between conditions of one group."""
        match = '[match.description]\nstarts_with = "card"\nends_with = "amsterdam"'

        assert self._matches(match, make_txn("CARD payment AMSTERDAM"))
        assert not self._matches(match, make_txn("card payment utrecht"))

    def test_equals_is_case_insensitive(self):
        """Test exact description matching."""
        match = '[match.description]\nequals = "netflix"'

        assert self._matches(match, make_txn("NETFLIX"))
        assert not self._matches(match, make_txn("NETFLIX.COM"))

    def test_regex(self):
        """Test pattern matching."""
        match = "[match.description]\nregex = '^ns\\s+reiz'"

        assert self._matches(match, make_txn("NS Reizigers"))
        assert not self._matches(match, make_txn("Station NS Reizigers"))

    def test_amount_conditions(self):
        """Test amount comparisons."""
        assert self._matches("[match.amount]\nequals = -4.5", make_txn("x", "-4.50"))
        assert self._matches("[match.amount]\ngreater_than = 100", make_txn("x", "100.01"))
        assert not self._matches("[match.amount]\ngreater_than = 100", make_txn("x", "100"))
        assert self._matches("[match.amount]\nrange = [10, 20]", make_txn("x", "10"))
        assert self._matches("[match.amount]\nrange = [10, 20]", make_txn("x", "20"))
        assert not self._matches("[match.amount]\nrange = [10, 20]", make_txn("x", "20.01"))

    def test_date_conditions(self):
        """Test weekday and day of month."""
        monday = date(2024, 1, 15)

        assert self._matches("[match.date]\nday_of_week = 1", make_txn("x", txn_date=monday))
        assert not self._matches("[match.date]\nday_of_week = 2", make_txn("x", txn_date=monday))
        assert self._matches("[match.date]\nday_of_month = 15", make_txn("x", txn_date=monday))

    def test_empty_block_never_matches(self):
        """Test a rule without conditions."""
        assert not MatchBlock().matches(make_txn("anything"))


class TestEvaluateRules:
    """Tests for rule evaluation order."""

    def test_lowest_priority_wins(self):
        """Test that priority 10 beats priority 20 regardless of list order."""
        rules = [
            make_rule(simple_rule('[match.description]\ncontains = ["shop"]', "Late"), 20, rule_id=1),
            make_rule(simple_rule('[match.description]\ncontains = ["shop"]', "Early"), 10, rule_id=2),
        ]

        match = evaluate_rules(make_txn("Coffee Shop"), rules)

        assert match.category == "Early"
        assert match.rule_name == "rule 2"

    def test_equal_priority_keeps_order(self):
        """Test stable ordering."""
        rules = [
            make_rule(simple_rule('[match.description]\ncontains = ["shop"]', "First"), 5, rule_id=1),
            make_rule(simple_rule('[match.description]\ncontains = ["shop"]', "Second"), 5, rule_id=2),
        ]

        assert evaluate_rules(make_txn("shop"), rules).category == "First"

    def test_inactive_rules_are_ignored(self):
        """Test that inactive rules never match."""
        rules = [make_rule(GROCERIES, is_active=False)]

        assert evaluate_rules(make_txn("Jumbo"), rules) is None

    def test_no_match(self):
        """Test a transaction no rule matches."""
        assert evaluate_rules(make_txn("Bakery"), [make_rule(GROCERIES)]) is None

    def test_broken_rule_is_skipped(self):
        """Test that a malformed stored rule does not stop evaluation."""
        rules = [
            make_rule("not [[ toml", 1, rule_id=1),
            make_rule(GROCERIES, 2, name="Groceries", rule_id=2),
        ]

        match = evaluate_rules(make_txn("JUMBO 123"), rules)

        assert match.rule_name == "Groceries"
        assert match.tags == ("food",)

    def test_slow_regex_times_out(self):
        """Test that a runaway regex is abandoned and the next rule wins."""
        rules = [
            make_rule(simple_rule('[match.description]\nregex = "^(a|aa)+$"', "Slow"), 1, name="Slow", rule_id=1),
            make_rule(simple_rule('[match.description]\ncontains = ["aaa"]', "Plain"), 2, name="Plain", rule_id=2),
        ]

        start = time.monotonic()
        match = evaluate_rules(make_txn("a" * 60 + "!"), rules)
        elapsed = time.monotonic() - start

        assert match.rule_name == "Plain"
        assert match.category == "Plain"
        assert elapsed < REGEX_TIMEOUT_SECONDS + 5

    def test_works_on_candidates(self):
        """Test evaluation of unsaved candidates."""
        candidate = TransactionCandidate(
            date=date(2024, 1, 15),
            description="Albert Heijn 1234",
            amount=Decimal("-20.00"),
            duplicate_hash="",
        )

        assert evaluate_rules(candidate, [make_rule(GROCERIES)]).category == "Groceries"


def test_merge_tags():
    """Test order-preserving tag union."""
    assert merge_tags(("a", "b"), ("b", "c")) == ("a", "b", "c")
    assert merge_tags((), ()) == ()


class TestApplyRulesToBatch:
    """Tests for batch categorization."""

    LOOKUP = staticmethod(lambda name: {"groceries": 1, "eating out": 2}.get(name.casefold()))

    def test_categorizes_matches(self):
        """Test that matched transactions get category and tags."""
        updated = []
        txns = [make_txn("Jumbo", txn_id=1), make_txn("Bakery", txn_id=2)]

        count = apply_rules_to_batch(
            txns, [make_rule(GROCERIES)], self.LOOKUP, on_update=updated.append
        )

        assert count == 1
        assert len(updated) == 1
        assert updated[0].id == 1
        assert updated[0].category_id == 1
        assert updated[0].tags == ("food",)

    def test_existing_tags_are_kept(self):
        """Test tag union with existing tags."""
        updated = []

        apply_rules_to_batch(
            [make_txn("Jumbo", tags=("weekly",))],
            [make_rule(GROCERIES)],
            self.LOOKUP,
            on_update=updated.append,
        )

        assert updated[0].tags == ("weekly", "food")

    def test_unknown_category_still_adds_tags(self):
        """Test a rule naming a category that does not exist."""
        updated = []
        document = GROCERIES.replace('category = "Groceries"', 'category = "Missing"')

        count = apply_rules_to_batch(
            [make_txn("Jumbo")], [make_rule(document)], self.LOOKUP, on_update=updated.append
        )

        assert count == 1
        assert updated[0].category_id is None
        assert updated[0].tags == ("food",)

    def test_rerun_changes_nothing(self):
        """Test idempotency on already categorized transactions."""
        txn = make_txn("Jumbo", category_id=1, tags=("food",))

        assert apply_rules_to_batch([txn], [make_rule(GROCERIES)], self.LOOKUP) == 0

    def test_no_active_rules(self):
        """Test an empty rule set."""
        assert apply_rules_to_batch([make_txn("Jumbo")], [], self.LOOKUP) == 0
        assert (
            apply_rules_to_batch(
                [make_txn("Jumbo")], [make_rule(GROCERIES, is_active=False)], self.LOOKUP
            )
            == 0
        )

    def test_should_stop(self):
        """Test that a stop signal ends the batch between transactions."""
        signals = iter([False, True])
        txns = [make_txn("Jumbo", txn_id=1), make_txn("Jumbo", txn_id=2)]

        count = apply_rules_to_batch(
            txns, [make_rule(GROCERIES)], self.LOOKUP, should_stop=lambda: next(signals)
        )

        assert count == 1
