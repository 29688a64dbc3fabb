"""Profile domain service."""

from typing import Optional
from spendtrail.database.base import Database
from spendtrail.domain.entities import Profile as ProfileEntity
from spendtrail.domain.errors import ConflictError, ValidationError

DEFAULT_PROFILE = "default"


class ProfileService:
    """Service for resolving the profile that owns accounts, categories and rules."""

    def __init__(self, db: Database):
        """Initialize profile service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_profile(self, name: str) -> int:
        """Create a profile.

        Raises:
            ValidationError: If the name is empty
            ConflictError: If a profile with the name exists
        """
        name = name.strip()
        if not name:
            raise ValidationError("Profile name must not be empty")
        if self.db.get_profile_by_name(name) is not None:
            raise ConflictError(f"Profile with name '{name}' already exists")
        return self.db.create_profile(name)

    def get_profile_by_name(self, name: str) -> Optional[ProfileEntity]:
        """Get profile by name."""
        return self.db.get_profile_by_name(name.strip())

    def get_or_create_profile(self, name: str = DEFAULT_PROFILE) -> ProfileEntity:
        """Return the named profile, creating it on first use."""
        profile = self.get_profile_by_name(name)
        if profile is None:
            profile_id = self.create_profile(name)
            profile = self.db.get_profile(profile_id)
        return profile
