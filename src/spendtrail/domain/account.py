"""Account domain service."""

from typing import Optional
from spendtrail.database.base import Database
from spendtrail.domain.entities import Account as AccountEntity
from spendtrail.domain.errors import ConflictError, NotFoundError, account_not_found


class AccountService:
    """Service for managing accounts."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_account(self, profile_id: int, name: str, bank_name: str) -> int:
        """Create a new account.

        Args:
            profile_id: Owning profile ID
            name: Account name
            bank_name: Bank name

        Returns:
            Account ID

        Raises:
            ConflictError: If account name already exists in the profile
        """
        # Check if account with same name exists
        for acc in self.db.list_accounts(profile_id=profile_id):
            if acc.name == name:
                raise ConflictError(f"Account with name '{name}' already exists")

        return self.db.create_account(profile_id=profile_id, name=name, bank_name=bank_name)

    def get_account(self, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID.

        Args:
            account_id: Account ID

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def list_accounts(self, profile_id: int) -> list[AccountEntity]:
        """List accounts of a profile.

        Returns:
            List of account entities
        """
        return self.db.list_accounts(profile_id=profile_id)

    def resolve_account(self, profile_id: int, account_identifier: str) -> AccountEntity:
        """Resolve an account by name or ID within a profile.

        Raises:
            NotFoundError: If no account matches
        """
        accounts = self.list_accounts(profile_id)
        for acc in accounts:
            if acc.name == account_identifier:
                return acc

        try:
            account_id = int(account_identifier)
        except ValueError:
            raise NotFoundError(f"Account '{account_identifier}' not found") from None

        for acc in accounts:
            if acc.id == account_id:
                return acc
        raise NotFoundError(account_not_found(account_id))
