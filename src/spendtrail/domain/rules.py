"""Categorization rule engine.

A rule is a small TOML document::

    name = "Groceries"
    priority = 10
    category = "Food"
    tags = ["household"]

    [match.description]
    contains = ["LIDL", "ALDI"]

    [match.amount]
    less_than = 0

The document is parsed once into a typed matcher tree (``ParsedRule``).
Evaluation walks that tree and never looks at the raw TOML again.

Semantics:
- Across groups (description, amount, date): every present group must match.
- Within a group: every given condition must hold, except ``contains``,
  which matches if any of its substrings is found.
- A group with no conditions is absent. A rule without any group never
  matches.
- Active rules are tried in ascending priority and the first match wins.
"""

import logging
import tomllib
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Any, Callable, Iterable, Optional, Sequence

import regex

from spendtrail.domain.entities import CategoryMatch, Rule, RuleValidationResult, Transaction
from spendtrail.domain.errors import RuleSyntaxError

logger = logging.getLogger(__name__)

REGEX_TIMEOUT_SECONDS = 1.0

_DESCRIPTION_KEYS = {"contains", "equals", "starts_with", "ends_with", "regex"}
_AMOUNT_KEYS = {"equals", "greater_than", "less_than", "range"}
_DATE_KEYS = {"day_of_week", "day_of_month"}


@dataclass(frozen=True)
class DescriptionMatcher:
    """Conditions on the transaction description (case-insensitive)."""

    contains: tuple[str, ...] = ()
    equals: Optional[str] = None
    starts_with: Optional[str] = None
    ends_with: Optional[str] = None
    pattern: Optional[Any] = None

    @property
    def has_conditions(self) -> bool:
        return bool(
            self.contains
            or self.equals
            or self.starts_with
            or self.ends_with
            or self.pattern is not None
        )

    def matches(self, description: Optional[str]) -> bool:
        text = (description or "").casefold()

        if self.contains and not any(c.casefold() in text for c in self.contains):
            return False
        if self.equals and text != self.equals.casefold():
            return False
        if self.starts_with and not text.startswith(self.starts_with.casefold()):
            return False
        if self.ends_with and not text.endswith(self.ends_with.casefold()):
            return False
        if self.pattern is not None:
            # TimeoutError propagates; the rule is then skipped by the caller
            if self.pattern.search(description or "", timeout=REGEX_TIMEOUT_SECONDS) is None:
                return False
        return True


@dataclass(frozen=True)
class AmountMatcher:
    """Conditions on the signed amount."""

    equals: Optional[Decimal] = None
    greater_than: Optional[Decimal] = None
    less_than: Optional[Decimal] = None
    range_min: Optional[Decimal] = None
    range_max: Optional[Decimal] = None

    @property
    def has_conditions(self) -> bool:
        return (
            self.equals is not None
            or self.greater_than is not None
            or self.less_than is not None
            or (self.range_min is not None and self.range_max is not None)
        )

    def matches(self, amount: Decimal) -> bool:
        if self.equals is not None and amount != self.equals:
            return False
        if self.greater_than is not None and amount <= self.greater_than:
            return False
        if self.less_than is not None and amount >= self.less_than:
            return False
        if self.range_min is not None and self.range_max is not None:
            if amount < self.range_min or amount > self.range_max:
                return False
        return True


@dataclass(frozen=True)
class DateMatcher:
    """Conditions on the transaction date. ``day_of_week`` is ISO (Monday=1)."""

    day_of_week: Optional[int] = None
    day_of_month: Optional[int] = None

    @property
    def has_conditions(self) -> bool:
        return self.day_of_week is not None or self.day_of_month is not None

    def matches(self, txn_date: date) -> bool:
        if self.day_of_week is not None and txn_date.isoweekday() != self.day_of_week:
            return False
        if self.day_of_month is not None and txn_date.day != self.day_of_month:
            return False
        return True


@dataclass(frozen=True)
class MatchBlock:
    """The matcher groups of a rule; ``None`` means unconstrained."""

    description: Optional[DescriptionMatcher] = None
    amount: Optional[AmountMatcher] = None
    date: Optional[DateMatcher] = None

    @property
    def is_empty(self) -> bool:
        return self.description is None and self.amount is None and self.date is None

    def matches(self, transaction: Any) -> bool:
        """Check a transaction-like object with date, amount and description."""
        if self.is_empty:
            return False
        if self.description is not None and not self.description.matches(transaction.description):
            return False
        if self.amount is not None and not self.amount.matches(transaction.amount):
            return False
        if self.date is not None and not self.date.matches(transaction.date):
            return False
        return True


@dataclass(frozen=True)
class ParsedRule:
    """Typed form of a rule document."""

    name: Optional[str]
    priority: int
    category: Optional[str]
    tags: tuple[str, ...]
    match: MatchBlock


def _optional_string(table: dict[str, Any], key: str, context: str) -> Optional[str]:
    value = table.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise RuleSyntaxError(f"'{context}{key}' must be a string")
    return value if value.strip() else None


def _string_list(value: Any, label: str) -> tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise RuleSyntaxError(f"'{label}' must be a list of strings")
    items = []
    for item in value:
        item = item.strip()
        if item and item not in items:
            items.append(item)
    return tuple(items)


def _decimal(value: Any, label: str) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise RuleSyntaxError(f"'{label}' must be a number")
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise RuleSyntaxError(f"'{label}' must be a number") from None
    if not number.is_finite():
        raise RuleSyntaxError(f"'{label}' must be a finite number")
    return number


def _bounded_int(value: Any, label: str, low: int, high: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise RuleSyntaxError(f"'{label}' must be an integer")
    if not low <= value <= high:
        raise RuleSyntaxError(f"'{label}' must be between {low} and {high}")
    return value


def _check_keys(table: dict[str, Any], allowed: set[str], group: str) -> None:
    unknown = set(table) - allowed
    if unknown:
        raise RuleSyntaxError(
            f"Unknown {group} condition(s): {', '.join(sorted(unknown))}. "
            f"Allowed: {', '.join(sorted(allowed))}"
        )


def _group_table(match: dict[str, Any], key: str) -> Optional[dict[str, Any]]:
    table = match.get(key)
    if table is None:
        return None
    if not isinstance(table, dict):
        raise RuleSyntaxError(f"'match.{key}' must be a table")
    return table


def parse_description_matcher(table: dict[str, Any]) -> Optional[DescriptionMatcher]:
    """Parse a ``[match.description]`` table; returns None if it has no conditions."""
    _check_keys(table, _DESCRIPTION_KEYS, "description")

    contains: tuple[str, ...] = ()
    if "contains" in table:
        contains = _string_list(table["contains"], "match.description.contains")

    pattern = None
    source = _optional_string(table, "regex", "match.description.")
    if source is not None:
        try:
            pattern = regex.compile(source, regex.IGNORECASE)
        except regex.error as e:
            raise RuleSyntaxError(f"Invalid regex '{source}': {e}") from None

    matcher = DescriptionMatcher(
        contains=contains,
        equals=_optional_string(table, "equals", "match.description."),
        starts_with=_optional_string(table, "starts_with", "match.description."),
        ends_with=_optional_string(table, "ends_with", "match.description."),
        pattern=pattern,
    )
    return matcher if matcher.has_conditions else None


def parse_amount_matcher(table: dict[str, Any]) -> Optional[AmountMatcher]:
    """Parse a ``[match.amount]`` table; returns None if it has no conditions."""
    _check_keys(table, _AMOUNT_KEYS, "amount")

    values = {}
    for key in ("equals", "greater_than", "less_than"):
        if key in table:
            values[key] = _decimal(table[key], f"match.amount.{key}")

    if "range" in table:
        bounds = table["range"]
        if not isinstance(bounds, list) or len(bounds) != 2:
            raise RuleSyntaxError("'match.amount.range' must be a list of two numbers [min, max]")
        low = _decimal(bounds[0], "match.amount.range")
        high = _decimal(bounds[1], "match.amount.range")
        if low > high:
            raise RuleSyntaxError(
                f"'match.amount.range' minimum {low} is greater than maximum {high}"
            )
        values["range_min"] = low
        values["range_max"] = high

    matcher = AmountMatcher(**values)
    return matcher if matcher.has_conditions else None


def parse_date_matcher(table: dict[str, Any]) -> Optional[DateMatcher]:
    """Parse a ``[match.date]`` table; returns None if it has no conditions."""
    _check_keys(table, _DATE_KEYS, "date")

    matcher = DateMatcher(
        day_of_week=(
            _bounded_int(table["day_of_week"], "match.date.day_of_week", 1, 7)
            if "day_of_week" in table
            else None
        ),
        day_of_month=(
            _bounded_int(table["day_of_month"], "match.date.day_of_month", 1, 31)
            if "day_of_month" in table
            else None
        ),
    )
    return matcher if matcher.has_conditions else None


def _rule_table(doc: dict[str, Any]) -> dict[str, Any]:
    if "rules" in doc:
        rules = doc["rules"]
        if not isinstance(rules, list) or not rules or not isinstance(rules[0], dict):
            raise RuleSyntaxError("'rules' must be a non-empty array of tables")
        return rules[0]
    if isinstance(doc.get("rule"), dict):
        return doc["rule"]
    return doc


def parse_rule_document(document: str) -> ParsedRule:
    """Parse a TOML rule document into a ParsedRule.

    Root-level keys, a ``[rule]`` table, or the first entry of a ``[[rules]]``
    array are accepted.

    Args:
        document: TOML source

    Returns:
        ParsedRule with typed matchers

    Raises:
        RuleSyntaxError: If the TOML is malformed or a value has the wrong type
    """
    try:
        doc = tomllib.loads(document)
    except tomllib.TOMLDecodeError as e:
        raise RuleSyntaxError(f"Failed to parse rule: {e}") from None

    table = _rule_table(doc)

    name = table.get("name")
    if name is not None and not isinstance(name, str):
        raise RuleSyntaxError("'name' must be a string")

    priority = table.get("priority", 0)
    if isinstance(priority, bool) or not isinstance(priority, int):
        raise RuleSyntaxError("'priority' must be an integer")

    tags: tuple[str, ...] = ()
    if "tags" in table:
        tags = _string_list(table["tags"], "tags")

    match = table.get("match", {})
    if not isinstance(match, dict):
        raise RuleSyntaxError("'match' must be a table")

    description = _group_table(match, "description")
    amount = _group_table(match, "amount")
    date_table = _group_table(match, "date")

    return ParsedRule(
        name=name.strip() if name else None,
        priority=priority,
        category=_optional_string(table, "category", ""),
        tags=tags,
        match=MatchBlock(
            description=parse_description_matcher(description) if description is not None else None,
            amount=parse_amount_matcher(amount) if amount is not None else None,
            date=parse_date_matcher(date_table) if date_table is not None else None,
        ),
    )


@lru_cache(maxsize=512)
def _parse_cached(document: str) -> ParsedRule:
    return parse_rule_document(document)


def validate_rule_document(document: str) -> RuleValidationResult:
    """Validate a rule document without raising.

    A document is valid when it parses, has a non-empty name and at least
    one matcher group with a condition.
    """
    try:
        parsed = parse_rule_document(document)
    except RuleSyntaxError as e:
        return RuleValidationResult(False, str(e))
    except Exception as e:
        return RuleValidationResult(False, f"Failed to parse rule: {e}")

    if not parsed.name:
        return RuleValidationResult(False, "Rule must have a name")
    if parsed.match.is_empty:
        return RuleValidationResult(False, "Rule must have at least one match condition")
    return RuleValidationResult(True)


def order_rules(rules: Iterable[Rule]) -> list[Rule]:
    """Return active rules in evaluation order (ascending priority, stable)."""
    return sorted((r for r in rules if r.is_active), key=lambda r: r.priority)


def _first_match(transaction: Any, ordered: Sequence[Rule]) -> Optional[CategoryMatch]:
    for rule in ordered:
        try:
            parsed = _parse_cached(rule.rule_document)
            if parsed.match.matches(transaction):
                return CategoryMatch(
                    rule_name=rule.name,
                    category=parsed.category,
                    tags=parsed.tags,
                )
        except Exception as e:
            logger.warning(f"Failed to evaluate rule '{rule.name}': {e}")
    return None


def evaluate_rules(transaction: Any, rules: Iterable[Rule]) -> Optional[CategoryMatch]:
    """Find the first active rule, by priority, that matches a transaction.

    Args:
        transaction: Object with ``date``, ``amount`` and ``description``
        rules: Rules of the profile; inactive ones are ignored

    Returns:
        CategoryMatch of the winning rule, or None if no rule matches
    """
    return _first_match(transaction, order_rules(rules))


def merge_tags(existing: Iterable[str], new: Iterable[str]) -> tuple[str, ...]:
    """Union two tag collections, keeping first-seen order."""
    merged: list[str] = []
    for tag in list(existing) + list(new):
        if tag not in merged:
            merged.append(tag)
    return tuple(merged)


def apply_rules_to_batch(
    transactions: Iterable[Transaction],
    rules: Iterable[Rule],
    category_lookup: Callable[[str], Optional[int]],
    *,
    on_update: Optional[Callable[[Transaction], None]] = None,
    should_stop: Optional[Callable[[], bool]] = None,
) -> int:
    """Categorize a batch of transactions.

    Every transaction is evaluated independently against the same ordered
    rule list. The matched category name is resolved with
    ``category_lookup``; an unknown name leaves the category alone but the
    rule's tags are still added. Re-running on already categorized
    transactions changes nothing.

    Args:
        transactions: Transactions to categorize
        rules: Rules of the profile
        category_lookup: Case-insensitive category name to ID resolver
        on_update: Called with each changed transaction
        should_stop: Optional callable checked between transactions

    Returns:
        Number of transactions whose category or tags changed
    """
    ordered = order_rules(rules)
    if not ordered:
        return 0

    updated = 0
    for txn in transactions:
        if should_stop is not None and should_stop():
            logger.info("Rule application stopped early")
            break

        match = _first_match(txn, ordered)
        if match is None:
            continue

        category_id = txn.category_id
        if match.category:
            resolved = category_lookup(match.category)
            if resolved is None:
                logger.warning(
                    f"Rule '{match.rule_name}' refers to unknown category '{match.category}'"
                )
            else:
                category_id = resolved

        tags = merge_tags(txn.tags, match.tags)
        if category_id == txn.category_id and tags == tuple(txn.tags):
            continue

        updated += 1
        if on_update is not None:
            on_update(replace(txn, category_id=category_id, tags=tags))

    return updated
