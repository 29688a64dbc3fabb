"""Domain tests for profile, account, category and import format services."""

import pytest

from spendtrail.domain.entities import FormatConfig
from spendtrail.domain.errors import ConflictError, NotFoundError, ValidationError
from spendtrail.domain.import_format import ImportFormatService
from spendtrail.domain.profile import DEFAULT_PROFILE, ProfileService


def test_get_or_create_profile(temp_db):
    """The profile is created once and then reused."""
    service = ProfileService(temp_db)

    first = service.get_or_create_profile()
    second = service.get_or_create_profile()

    assert first.name == DEFAULT_PROFILE
    assert first.id == second.id


def test_create_profile_validation(temp_db):
    """Profile names must be non-empty and unique."""
    service = ProfileService(temp_db)
    service.create_profile("home")

    with pytest.raises(ConflictError):
        service.create_profile("home")
    with pytest.raises(ValidationError):
        service.create_profile("  ")


def test_create_account_conflict(account_service, profile, sample_account):
    """Account names are unique within a profile."""
    with pytest.raises(ConflictError, match="already exists"):
        account_service.create_account(profile.id, "Checking", "Other Bank")


def test_resolve_account(account_service, profile, sample_account):
    """Accounts resolve by name or ID."""
    assert account_service.resolve_account(profile.id, "Checking") == sample_account
    assert account_service.resolve_account(profile.id, str(sample_account.id)) == sample_account

    with pytest.raises(NotFoundError):
        account_service.resolve_account(profile.id, "Nope")
    with pytest.raises(NotFoundError):
        account_service.resolve_account(profile.id, "999")


def test_create_category_conflict_ignores_case(category_service, profile):
    """Category names are unique ignoring case."""
    category_service.create_category(profile.id, "Groceries")

    with pytest.raises(ConflictError):
        category_service.create_category(profile.id, "groceries")
    with pytest.raises(ValidationError):
        category_service.create_category(profile.id, "")


def test_category_lookup(category_service, profile, sample_categories):
    """The batch lookup resolves names ignoring case and whitespace."""
    lookup = category_service.build_lookup(profile.id)

    assert lookup("eating out") == sample_categories["Eating Out"]
    assert lookup(" INCOME ") == sample_categories["Income"]
    assert lookup("Travel") is None


def test_import_format_service(temp_db, profile):
    """Formats are validated, unique by name and deletable."""
    service = ImportFormatService(temp_db)
    config = FormatConfig(delimiter=";", amount_column=2)

    format_id = service.create_format(profile.id, "Bank", config, bank_name="Bank")

    assert service.get_format_by_name(profile.id, "Bank").id == format_id
    with pytest.raises(ConflictError):
        service.create_format(profile.id, "Bank", config)
    with pytest.raises(ValidationError):
        service.create_format(profile.id, "Broken", FormatConfig())

    service.delete_format(profile.id, "Bank")
    assert service.list_formats(profile.id) == []
    with pytest.raises(NotFoundError):
        service.delete_format(profile.id, "Bank")
