"""Domain model entities for spendtrail.

These are pure data classes representing business concepts, independent of
database schema. The import pipeline and the rule engine only ever see these
types, never the ORM models.
"""

from dataclasses import dataclass, replace
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from spendtrail.domain.errors import ValidationError

SUPPORTED_DELIMITERS = (",", ";", "\t")
AMOUNT_TYPES = ("signed", "split")

# Wire/on-disk key for each FormatConfig attribute
_FORMAT_KEYS = {
    "delimiter": "delimiter",
    "has_header": "hasHeader",
    "date_column": "dateColumn",
    "date_format": "dateFormat",
    "description_column": "descriptionColumn",
    "amount_type": "amountType",
    "amount_column": "amountColumn",
    "debit_column": "debitColumn",
    "credit_column": "creditColumn",
    "balance_column": "balanceColumn",
}


@dataclass(frozen=True)
class Profile:
    """Profile domain entity owning accounts, categories and rules."""

    id: int
    name: str
    created_at: datetime


@dataclass(frozen=True)
class Account:
    """Bank account domain entity."""

    id: int
    profile_id: int
    name: str
    bank_name: str
    created_at: datetime


@dataclass(frozen=True)
class Category:
    """Category domain entity."""

    id: int
    profile_id: int
    name: str
    created_at: datetime


@dataclass(frozen=True)
class Transaction:
    """Persisted transaction domain entity."""

    id: int
    account_id: int
    date: date
    amount: Decimal
    description: str
    duplicate_hash: Optional[str]
    category_id: Optional[int]
    tags: tuple[str, ...]
    notes: Optional[str]
    imported_at: datetime


@dataclass(frozen=True)
class FormatConfig:
    """How to interpret the columns of a delimited bank export.

    Only the amount fields matching ``amount_type`` are read: ``amount_column``
    for ``signed``, ``debit_column``/``credit_column`` for ``split``. The
    others are ignored rather than required to be unset. ``balance_column``
    is recorded for reference and never read.
    """

    delimiter: str = ","
    has_header: bool = True
    date_column: int = 0
    date_format: str = "yyyy-MM-dd"
    description_column: int = 0
    amount_type: str = "signed"
    amount_column: Optional[int] = None
    debit_column: Optional[int] = None
    credit_column: Optional[int] = None
    balance_column: Optional[int] = None

    def validate(self) -> None:
        """Check that the configuration can extract transactions.

        Raises:
            ValidationError: If the configuration is unusable
        """
        if self.delimiter not in SUPPORTED_DELIMITERS:
            raise ValidationError(
                f"Unsupported delimiter {self.delimiter!r}. "
                "Must be one of: comma, semicolon, tab"
            )
        if self.amount_type not in AMOUNT_TYPES:
            raise ValidationError(
                f"Invalid amount type '{self.amount_type}'. "
                f"Must be one of: {', '.join(AMOUNT_TYPES)}"
            )
        if not self.date_format or not self.date_format.strip():
            raise ValidationError("Date format must not be empty")

        columns = {
            "date column": self.date_column,
            "description column": self.description_column,
            "amount column": self.amount_column,
            "debit column": self.debit_column,
            "credit column": self.credit_column,
            "balance column": self.balance_column,
        }
        for label, value in columns.items():
            if value is not None and value < 0:
                raise ValidationError(f"The {label} must not be negative (got {value})")

        if self.amount_type == "signed" and self.amount_column is None:
            raise ValidationError("Signed amount format requires an amount column")
        if (
            self.amount_type == "split"
            and self.debit_column is None
            and self.credit_column is None
        ):
            raise ValidationError(
                "Split amount format requires a debit column, a credit column, or both"
            )

    def with_overrides(self, **changes: Any) -> "FormatConfig":
        """Return a copy with every non-None keyword replaced."""
        unknown = set(changes) - set(_FORMAT_KEYS)
        if unknown:
            raise ValidationError(
                f"Unknown format field(s): {', '.join(sorted(unknown))}"
            )
        updates = {key: value for key, value in changes.items() if value is not None}
        if not updates:
            return self
        return replace(self, **updates)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the saved-format schema."""
        return {wire: getattr(self, attr) for attr, wire in _FORMAT_KEYS.items()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FormatConfig":
        """Build a FormatConfig from the saved-format schema.

        Both the camelCase schema keys and the snake_case attribute names are
        accepted. Unknown keys are ignored.

        Raises:
            ValidationError: If a value has the wrong type
        """
        values: dict[str, Any] = {}
        for attr, wire in _FORMAT_KEYS.items():
            if wire in data:
                values[attr] = data[wire]
            elif attr in data:
                values[attr] = data[attr]

        for attr in ("date_column", "description_column"):
            if attr in values and (isinstance(values[attr], bool) or not isinstance(values[attr], int)):
                raise ValidationError(f"'{_FORMAT_KEYS[attr]}' must be an integer")
        for attr in ("amount_column", "debit_column", "credit_column", "balance_column"):
            value = values.get(attr)
            if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
                raise ValidationError(f"'{_FORMAT_KEYS[attr]}' must be an integer or null")
        if "has_header" in values and not isinstance(values["has_header"], bool):
            raise ValidationError("'hasHeader' must be a boolean")
        if "amount_type" in values:
            values["amount_type"] = str(values["amount_type"]).lower()

        return cls(**values)


@dataclass(frozen=True)
class TransactionCandidate:
    """A parsed row that has not been persisted."""

    date: date
    description: str
    amount: Decimal
    duplicate_hash: str
    is_duplicate: bool = False
    row_number: int = 0


class ImportStatus(str, Enum):
    """Lifecycle of an import session."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class ImportSession:
    """Uploaded file awaiting preview/confirmation."""

    id: int
    account_id: int
    filename: str
    row_count: int
    status: ImportStatus
    error_message: Optional[str]
    format_config: Optional[FormatConfig]
    csv_data: Optional[bytes]
    created_at: datetime
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class ImportFormat:
    """Saved import format domain entity."""

    id: int
    profile_id: int
    name: str
    bank_name: Optional[str]
    config: FormatConfig
    created_at: datetime


@dataclass(frozen=True)
class Rule:
    """Categorization rule domain entity.

    ``rule_document`` holds the TOML source; it is parsed by the rule engine.
    """

    id: int
    profile_id: int
    name: str
    priority: int
    rule_document: str
    is_active: bool
    created_at: datetime


@dataclass(frozen=True)
class CategoryMatch:
    """Result of evaluating rules against a transaction."""

    rule_name: str
    category: Optional[str] = None
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class RuleValidationResult:
    """Outcome of validating a rule document."""

    is_valid: bool
    error_message: Optional[str] = None
