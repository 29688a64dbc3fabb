"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations or invalid state transitions."""


class RuleSyntaxError(ValidationError):
    """A rule document could not be parsed into a matcher tree."""


class ImportFailedError(DomainError):
    """An import session failed while committing transactions."""


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def rule_not_found(rule_id: int) -> str:
    """Return message for missing rule."""
    return f"Rule {rule_id} not found"


def import_session_not_found(session_id: int) -> str:
    """Return message for missing import session."""
    return f"Import session {session_id} not found"


def import_format_not_found(name: str) -> str:
    """Return message for missing saved import format."""
    return f"Import format '{name}' not found"


def import_already_completed(session_id: int) -> str:
    """Return message when confirming an already completed import."""
    return f"Import session {session_id} already completed"


def import_not_pending(session_id: int, status: str) -> str:
    """Return message when an import session cannot be confirmed from its state."""
    if status == "failed":
        return (
            f"Import session {session_id} failed; upload the file again to retry"
        )
    return f"Import session {session_id} is {status} and cannot be confirmed"


def import_data_discarded(session_id: int) -> str:
    """Return message when the raw file of a session is no longer stored."""
    return f"Import session {session_id} has no stored file data"
