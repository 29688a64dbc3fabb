"""Saved import format domain service."""

from typing import Optional
from spendtrail.database.base import Database
from spendtrail.domain.entities import FormatConfig, ImportFormat as ImportFormatEntity
from spendtrail.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    import_format_not_found,
)


class ImportFormatService:
    """Service for managing saved import formats."""

    def __init__(self, db: Database):
        """Initialize import format service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_format(
        self,
        profile_id: int,
        name: str,
        config: FormatConfig,
        bank_name: Optional[str] = None,
    ) -> int:
        """Save a format for reuse with later imports from the same bank.

        Args:
            profile_id: Owning profile ID
            name: Format name
            config: Column layout
            bank_name: Optional bank name

        Returns:
            Format ID

        Raises:
            ValidationError: If the name is empty or the config is unusable
            ConflictError: If format name already exists
        """
        name = name.strip()
        if not name:
            raise ValidationError("Import format name must not be empty")

        config.validate()

        # Check if format with same name exists
        existing = self.db.get_import_format_by_name(profile_id, name)
        if existing is not None:
            raise ConflictError(f"Import format with name '{name}' already exists")

        return self.db.create_import_format(
            profile_id=profile_id, name=name, config=config, bank_name=bank_name
        )

    def get_format_by_name(self, profile_id: int, name: str) -> Optional[ImportFormatEntity]:
        """Get saved format by name.

        Returns:
            Format entity or None if not found
        """
        return self.db.get_import_format_by_name(profile_id, name)

    def list_formats(self, profile_id: int) -> list[ImportFormatEntity]:
        """List saved formats of a profile."""
        return self.db.list_import_formats(profile_id)

    def delete_format(self, profile_id: int, name: str) -> None:
        """Delete a saved format.

        Raises:
            NotFoundError: If format doesn't exist
        """
        fmt = self.db.get_import_format_by_name(profile_id, name)
        if fmt is None:
            raise NotFoundError(import_format_not_found(name))

        self.db.delete_import_format(fmt.id)
