"""Categorization rule domain service."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from spendtrail.database.base import Database
from spendtrail.domain.category import CategoryService
from spendtrail.domain.entities import CategoryMatch, Rule as RuleEntity, TransactionCandidate
from spendtrail.domain.errors import NotFoundError, ValidationError, rule_not_found
from spendtrail.domain.rules import (
    apply_rules_to_batch,
    evaluate_rules,
    parse_rule_document,
    validate_rule_document,
)

logger = logging.getLogger(__name__)


class RuleService:
    """Service for managing and running categorization rules."""

    def __init__(self, db: Database):
        """Initialize rule service.

        Args:
            db: Database instance
        """
        self.db = db
        self.category_service = CategoryService(db)

    def _validate(self, rule_document: str) -> None:
        result = validate_rule_document(rule_document)
        if not result.is_valid:
            raise ValidationError(f"Invalid rule: {result.error_message}")

    def create_rule(
        self,
        profile_id: int,
        name: str,
        rule_document: str,
        priority: Optional[int] = None,
        is_active: bool = True,
    ) -> int:
        """Create a rule after validating its document.

        Args:
            profile_id: Owning profile ID
            name: Rule name shown in listings and match results
            rule_document: TOML rule source
            priority: Evaluation priority (lower first); defaults to the
                document's ``priority`` or 0
            is_active: Whether the rule takes part in categorization

        Returns:
            Rule ID

        Raises:
            ValidationError: If the name is empty or the document is invalid
        """
        name = name.strip()
        if not name:
            raise ValidationError("Rule name must not be empty")
        self._validate(rule_document)

        if priority is None:
            priority = parse_rule_document(rule_document).priority

        return self.db.create_rule(
            profile_id=profile_id,
            name=name,
            priority=priority,
            rule_document=rule_document,
            is_active=is_active,
        )

    def get_rule(self, rule_id: int) -> Optional[RuleEntity]:
        """Get rule by ID."""
        return self.db.get_rule(rule_id)

    def list_rules(self, profile_id: int, active_only: bool = False) -> list[RuleEntity]:
        """List rules of a profile in evaluation order."""
        return self.db.list_rules(profile_id, active_only=active_only)

    def update_rule(
        self,
        rule_id: int,
        name: Optional[str] = None,
        rule_document: Optional[str] = None,
        priority: Optional[int] = None,
        is_active: Optional[bool] = None,
    ) -> None:
        """Update rule fields; a new document is validated first.

        Raises:
            NotFoundError: If the rule doesn't exist
            ValidationError: If the new document is invalid
        """
        if self.db.get_rule(rule_id) is None:
            raise NotFoundError(rule_not_found(rule_id))
        if name is not None and not name.strip():
            raise ValidationError("Rule name must not be empty")
        if rule_document is not None:
            self._validate(rule_document)

        self.db.update_rule(
            rule_id,
            name=name.strip() if name else None,
            rule_document=rule_document,
            priority=priority,
            is_active=is_active,
        )

    def delete_rule(self, rule_id: int) -> None:
        """Delete a rule.

        Raises:
            NotFoundError: If the rule doesn't exist
        """
        if self.db.get_rule(rule_id) is None:
            raise NotFoundError(rule_not_found(rule_id))
        self.db.delete_rule(rule_id)

    def test_rules(
        self, profile_id: int, description: str, amount: Decimal, txn_date: date
    ) -> Optional[CategoryMatch]:
        """Evaluate the active rules against a sample transaction."""
        sample = TransactionCandidate(
            date=txn_date,
            description=description,
            amount=amount,
            duplicate_hash="",
        )
        return evaluate_rules(sample, self.db.list_rules(profile_id, active_only=True))

    def apply_rules(self, profile_id: int, only_uncategorized: bool = True) -> int:
        """Re-run categorization over the stored transactions of a profile.

        Args:
            profile_id: Profile ID
            only_uncategorized: Skip transactions that already have a category

        Returns:
            Number of transactions that changed
        """
        rules = self.db.list_rules(profile_id, active_only=True)
        if not rules:
            return 0

        transactions = self.db.list_transactions(
            profile_id=profile_id, uncategorized=only_uncategorized
        )
        updated = apply_rules_to_batch(
            transactions,
            rules,
            self.category_service.build_lookup(profile_id),
            on_update=lambda txn: self.db.update_transaction_categorization(
                txn.id, txn.category_id, txn.tags
            ),
        )
        logger.info(
            f"Applied {len(rules)} rules to {len(transactions)} transactions, {updated} updated"
        )
        return updated
