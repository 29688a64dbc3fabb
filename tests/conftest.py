"""Shared pytest fixtures for spendtrail tests."""

import tempfile
import os
from pathlib import Path
import pytest

from spendtrail.database.factories import create_sqlite_database
from spendtrail.domain.account import AccountService
from spendtrail.domain.category import CategoryService
from spendtrail.domain.csv_import import CSVImportService
from spendtrail.domain.profile import ProfileService
from spendtrail.domain.rule_service import RuleService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def profile(temp_db):
    """Create the default profile."""
    return ProfileService(temp_db).get_or_create_profile()


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def category_service(temp_db):
    """Create a CategoryService with a temporary database."""
    return CategoryService(temp_db)


@pytest.fixture
def import_service(temp_db):
    """Create a CSVImportService with a temporary database."""
    return CSVImportService(temp_db)


@pytest.fixture
def rule_service(temp_db):
    """Create a RuleService with a temporary database."""
    return RuleService(temp_db)


@pytest.fixture
def sample_account(account_service, profile):
    """Create a sample account for testing."""
    account_id = account_service.create_account(
        profile_id=profile.id, name="Checking", bank_name="Test Bank"
    )
    return account_service.get_account(account_id)


@pytest.fixture
def sample_categories(category_service, profile):
    """Create a few categories and return their IDs by name."""
    return {
        name: category_service.create_category(profile.id, name)
        for name in ("Groceries", "Income", "Eating Out")
    }


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
