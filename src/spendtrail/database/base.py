"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional

# Import entities directly to avoid circular import through domain/__init__.py
from spendtrail.domain.entities import (
    Profile,
    Account,
    Category,
    Transaction,
    TransactionCandidate,
    FormatConfig,
    ImportFormat,
    ImportSession,
    ImportStatus,
    Rule,
)


class Database(ABC):
    """Abstract database interface for spendtrail.

    This is the storage collaborator of the import pipeline. Duplicate hashes
    are read once per import and not locked, so two concurrent imports into
    the same account can both insert the same row.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def rollback(self) -> None:
        """Discard uncommitted changes after a failed operation."""
        pass

    # Profile operations
    @abstractmethod
    def create_profile(self, name: str) -> int:
        """Create a profile. Returns profile ID."""
        pass

    @abstractmethod
    def get_profile(self, profile_id: int) -> Optional[Profile]:
        """Get profile by ID."""
        pass

    @abstractmethod
    def get_profile_by_name(self, name: str) -> Optional[Profile]:
        """Get profile by name."""
        pass

    # Account operations
    @abstractmethod
    def create_account(self, profile_id: int, name: str, bank_name: str) -> int:
        """Create a new account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def list_accounts(self, profile_id: Optional[int] = None) -> list[Account]:
        """List accounts, optionally filtered by profile."""
        pass

    # Category operations
    @abstractmethod
    def create_category(self, profile_id: int, name: str) -> int:
        """Create a category. Returns category ID."""
        pass

    @abstractmethod
    def get_category(self, category_id: int) -> Optional[Category]:
        """Get category by ID."""
        pass

    @abstractmethod
    def get_category_by_name(self, profile_id: int, name: str) -> Optional[Category]:
        """Get category by name within a profile, ignoring case."""
        pass

    @abstractmethod
    def list_categories(self, profile_id: int) -> list[Category]:
        """List categories of a profile."""
        pass

    # Transaction operations
    @abstractmethod
    def create_transactions(
        self, account_id: int, candidates: Iterable[TransactionCandidate]
    ) -> list[int]:
        """Persist candidates as transactions in one commit. Returns transaction IDs."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        account_id: Optional[int] = None,
        profile_id: Optional[int] = None,
        uncategorized: bool = False,
        transaction_ids: Optional[Iterable[int]] = None,
    ) -> list[Transaction]:
        """List transactions with optional filters.

        Args:
            account_id: Optional account ID filter
            profile_id: Optional profile ID filter (through the account)
            uncategorized: If True, only return transactions without a category
            transaction_ids: Optional explicit set of IDs
        """
        pass

    @abstractmethod
    def get_duplicate_hashes(self, account_id: int) -> set[str]:
        """Get all duplicate hashes stored for an account."""
        pass

    @abstractmethod
    def update_transaction_categorization(
        self, transaction_id: int, category_id: Optional[int], tags: Iterable[str]
    ) -> None:
        """Update transaction category and tags."""
        pass

    # Import format operations
    @abstractmethod
    def create_import_format(
        self, profile_id: int, name: str, config: FormatConfig, bank_name: Optional[str] = None
    ) -> int:
        """Save an import format. Returns format ID."""
        pass

    @abstractmethod
    def get_import_format_by_name(self, profile_id: int, name: str) -> Optional[ImportFormat]:
        """Get saved import format by name."""
        pass

    @abstractmethod
    def list_import_formats(self, profile_id: int) -> list[ImportFormat]:
        """List saved import formats of a profile."""
        pass

    @abstractmethod
    def delete_import_format(self, format_id: int) -> None:
        """Delete a saved import format."""
        pass

    # Import session operations
    @abstractmethod
    def create_import_session(
        self,
        account_id: int,
        filename: str,
        row_count: int,
        format_config: FormatConfig,
        csv_data: bytes,
    ) -> int:
        """Create a pending import session. Returns session ID."""
        pass

    @abstractmethod
    def get_import_session(self, session_id: int) -> Optional[ImportSession]:
        """Get import session by ID."""
        pass

    @abstractmethod
    def list_import_sessions(self, account_id: int) -> list[ImportSession]:
        """List import sessions of an account, newest first."""
        pass

    @abstractmethod
    def update_import_session(
        self,
        session_id: int,
        status: Optional[ImportStatus] = None,
        error_message: Optional[str] = None,
        format_config: Optional[FormatConfig] = None,
        clear_data: bool = False,
    ) -> None:
        """Update import session state, optionally discarding the stored file."""
        pass

    # Rule operations
    @abstractmethod
    def create_rule(
        self, profile_id: int, name: str, priority: int, rule_document: str, is_active: bool = True
    ) -> int:
        """Create a categorization rule. Returns rule ID."""
        pass

    @abstractmethod
    def get_rule(self, rule_id: int) -> Optional[Rule]:
        """Get rule by ID."""
        pass

    @abstractmethod
    def list_rules(self, profile_id: int, active_only: bool = False) -> list[Rule]:
        """List rules of a profile ordered by priority."""
        pass

    @abstractmethod
    def update_rule(self, rule_id: int, **fields: Any) -> None:
        """Update rule fields (name, priority, rule_document, is_active)."""
        pass

    @abstractmethod
    def delete_rule(self, rule_id: int) -> None:
        """Delete a rule."""
        pass
