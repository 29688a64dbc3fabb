"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so the import pipeline and the rule
engine never depend on the ORM schema.
"""

from decimal import Decimal

from spendtrail.domain import entities as domain
from spendtrail.database.models import (
    Profile as ORMProfile,
    Account as ORMAccount,
    Category as ORMCategory,
    Transaction as ORMTransaction,
    ImportFormat as ORMImportFormat,
    ImportSession as ORMImportSession,
    CategorizationRule as ORMRule,
)


def profile_to_domain(orm_profile: ORMProfile) -> domain.Profile:
    """Convert SQLAlchemy Profile model to domain Profile entity."""
    return domain.Profile(
        id=orm_profile.id,
        name=orm_profile.name,
        created_at=orm_profile.created_at,
    )


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        profile_id=orm_account.profile_id,
        name=orm_account.name,
        bank_name=orm_account.bank_name,
        created_at=orm_account.created_at,
    )


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    return domain.Category(
        id=orm_category.id,
        profile_id=orm_category.profile_id,
        name=orm_category.name,
        created_at=orm_category.created_at,
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        account_id=orm_transaction.account_id,
        date=orm_transaction.date,
        amount=Decimal(orm_transaction.amount),
        description=orm_transaction.description or "",
        duplicate_hash=orm_transaction.duplicate_hash,
        category_id=orm_transaction.category_id,
        tags=tuple(orm_transaction.tags or ()),
        notes=orm_transaction.notes,
        imported_at=orm_transaction.imported_at,
    )


def import_format_to_domain(orm_format: ORMImportFormat) -> domain.ImportFormat:
    """Convert SQLAlchemy ImportFormat model to domain ImportFormat entity."""
    return domain.ImportFormat(
        id=orm_format.id,
        profile_id=orm_format.profile_id,
        name=orm_format.name,
        bank_name=orm_format.bank_name,
        config=domain.FormatConfig.from_dict(orm_format.config),
        created_at=orm_format.created_at,
    )


def import_session_to_domain(orm_session: ORMImportSession) -> domain.ImportSession:
    """Convert SQLAlchemy ImportSession model to domain ImportSession entity."""
    format_config = None
    if orm_session.format_config is not None:
        format_config = domain.FormatConfig.from_dict(orm_session.format_config)

    return domain.ImportSession(
        id=orm_session.id,
        account_id=orm_session.account_id,
        filename=orm_session.filename,
        row_count=orm_session.row_count,
        status=domain.ImportStatus(orm_session.status),
        error_message=orm_session.error_message,
        format_config=format_config,
        csv_data=orm_session.csv_data,
        created_at=orm_session.created_at,
        updated_at=orm_session.updated_at,
    )


def rule_to_domain(orm_rule: ORMRule) -> domain.Rule:
    """Convert SQLAlchemy CategorizationRule model to domain Rule entity."""
    return domain.Rule(
        id=orm_rule.id,
        profile_id=orm_rule.profile_id,
        name=orm_rule.name,
        priority=orm_rule.priority,
        rule_document=orm_rule.rule_document,
        is_active=orm_rule.is_active,
        created_at=orm_rule.created_at,
    )
