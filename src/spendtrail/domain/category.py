"""Category domain service."""

from typing import Callable, Optional
from spendtrail.database.base import Database
from spendtrail.domain.entities import Category as CategoryEntity
from spendtrail.domain.errors import ConflictError, ValidationError


class CategoryService:
    """Service for managing categories."""

    def __init__(self, db: Database):
        """Initialize category service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_category(self, profile_id: int, name: str) -> int:
        """Create a category.

        Args:
            profile_id: Owning profile ID
            name: Category name, unique within the profile ignoring case

        Returns:
            Category ID

        Raises:
            ValidationError: If the name is empty
            ConflictError: If the name is taken
        """
        name = name.strip()
        if not name:
            raise ValidationError("Category name must not be empty")
        if self.db.get_category_by_name(profile_id, name) is not None:
            raise ConflictError(f"Category '{name}' already exists")
        return self.db.create_category(profile_id=profile_id, name=name)

    def get_category_by_name(self, profile_id: int, name: str) -> Optional[CategoryEntity]:
        """Get category by name, ignoring case."""
        return self.db.get_category_by_name(profile_id, name)

    def list_categories(self, profile_id: int) -> list[CategoryEntity]:
        """List categories of a profile."""
        return self.db.list_categories(profile_id)

    def build_lookup(self, profile_id: int) -> Callable[[str], Optional[int]]:
        """Build a case-insensitive category name to ID resolver.

        The category table is read once, so the resolver is cheap to call for
        every transaction of a batch.
        """
        by_name = {
            cat.name.casefold(): cat.id for cat in self.db.list_categories(profile_id)
        }

        def lookup(name: str) -> Optional[int]:
            return by_name.get(name.strip().casefold())

        return lookup
