"""CSV import domain service.

Sequences an import in three steps:

1. ``upload`` stores the file as a pending session and resolves its format
   (explicit override, saved format, or inference).
2. ``preview`` parses the file and flags duplicates without writing anything.
3. ``confirm`` persists the non-duplicate rows, applies the profile's rules
   to them and completes the session, discarding the stored file.

Existing duplicate hashes are read once at the start of preview/confirm and
not locked. Two concurrent confirms into the same account may therefore both
insert a row that neither saw stored; imports are user-initiated and rare
enough that this is accepted rather than serialized.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from spendtrail.database.base import Database
from spendtrail.domain.account import AccountService
from spendtrail.domain.category import CategoryService
from spendtrail.domain.entities import (
    FormatConfig,
    ImportSession,
    ImportStatus,
    TransactionCandidate,
)
from spendtrail.domain.errors import (
    ConflictError,
    ImportFailedError,
    NotFoundError,
    ValidationError,
    account_not_found,
    import_already_completed,
    import_data_discarded,
    import_format_not_found,
    import_not_pending,
    import_session_not_found,
)
from spendtrail.domain.extraction import decode_lines, extract_candidates, extract_for_commit
from spendtrail.domain.format_inference import SAMPLE_LINE_COUNT, FormatInferrer, HeuristicInferrer
from spendtrail.domain.import_format import ImportFormatService
from spendtrail.domain.rules import apply_rules_to_batch

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024


@dataclass(frozen=True)
class UploadResult:
    """A stored pending session and the lines its format was resolved from."""

    session: ImportSession
    sample_rows: list[str]


@dataclass(frozen=True)
class PreviewResult:
    """Parsed candidates of a session; nothing has been written."""

    session_id: int
    candidates: list[TransactionCandidate]
    duplicate_count: int
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ConfirmResult:
    """Outcome of committing a session."""

    session_id: int
    imported: int
    skipped: int
    categorized: int
    errors: list[str] = field(default_factory=list)
    stopped: bool = False


class _StopFlag:
    """Wraps a stop callable and remembers whether it fired."""

    def __init__(self, should_stop: Optional[Callable[[], bool]]):
        self.should_stop = should_stop
        self.fired = False

    def __call__(self) -> bool:
        if self.should_stop is not None and self.should_stop():
            self.fired = True
        return self.fired


class CSVImportService:
    """Service for importing delimited bank exports."""

    def __init__(self, db: Database, inferrer: Optional[FormatInferrer] = None):
        """Initialize CSV import service.

        Args:
            db: Database instance
            inferrer: Format inference strategy (defaults to heuristics)
        """
        self.db = db
        self.inferrer = inferrer or HeuristicInferrer()
        self.account_service = AccountService(db)
        self.category_service = CategoryService(db)
        self.format_service = ImportFormatService(db)

    def analyze(self, data: Union[bytes, str]) -> tuple[FormatConfig, list[str], int]:
        """Infer the format of a file.

        Returns:
            Tuple of (inferred format, sample lines, number of non-blank lines)
        """
        lines = decode_lines(data)
        sample = lines[:SAMPLE_LINE_COUNT]
        return self.inferrer.infer("\n".join(sample)), sample, len(lines)

    def upload(
        self,
        account_id: int,
        filename: str,
        data: bytes,
        format_override: Optional[FormatConfig] = None,
        format_name: Optional[str] = None,
    ) -> UploadResult:
        """Store a file as a pending import session.

        Args:
            account_id: Target account ID
            filename: Original file name
            data: Raw file content
            format_override: Explicit format; skips inference
            format_name: Name of a saved import format; skips inference

        Returns:
            UploadResult with the stored session and sample lines

        Raises:
            NotFoundError: If the account or saved format doesn't exist
            ValidationError: If the file is empty, too large, or the format is unusable
        """
        account = self.account_service.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))

        if not data:
            raise ValidationError("Empty file")
        if len(data) > MAX_UPLOAD_BYTES:
            raise ValidationError(
                f"File too large (max {MAX_UPLOAD_BYTES // (1024 * 1024)}MB)"
            )

        inferred, sample_rows, row_count = self.analyze(data)

        if format_override is not None:
            fmt = format_override
            source = "override"
        elif format_name is not None:
            saved = self.format_service.get_format_by_name(account.profile_id, format_name)
            if saved is None:
                raise NotFoundError(import_format_not_found(format_name))
            fmt = saved.config
            source = f"saved format '{format_name}'"
        else:
            fmt = inferred
            source = "inference"
        fmt.validate()

        session_id = self.db.create_import_session(
            account_id=account_id,
            filename=filename,
            row_count=row_count,
            format_config=fmt,
            csv_data=data,
        )
        logger.info(
            f"Import session {session_id}: {row_count} lines from '{filename}', format from {source}"
        )
        return UploadResult(session=self.db.get_import_session(session_id), sample_rows=sample_rows)

    def _get_session(self, session_id: int) -> ImportSession:
        session = self.db.get_import_session(session_id)
        if session is None:
            raise NotFoundError(import_session_not_found(session_id))
        return session

    def _resolve_format(
        self, session: ImportSession, format_override: Optional[FormatConfig]
    ) -> FormatConfig:
        fmt = format_override or session.format_config
        if fmt is None:
            raise ValidationError(f"Import session {session.id} has no format configured")
        fmt.validate()
        return fmt

    def preview(
        self, session_id: int, format_override: Optional[FormatConfig] = None
    ) -> PreviewResult:
        """Parse a session's file and flag duplicates, without writing.

        Args:
            session_id: Import session ID
            format_override: Optional format to use instead of the stored one

        Returns:
            PreviewResult with every parsed candidate

        Raises:
            NotFoundError: If the session doesn't exist
            ValidationError: If the file was discarded or the format is unusable
        """
        session = self._get_session(session_id)
        if session.csv_data is None:
            raise ValidationError(import_data_discarded(session_id))
        fmt = self._resolve_format(session, format_override)

        existing_hashes = self.db.get_duplicate_hashes(session.account_id)
        errors: list[str] = []
        candidates = extract_candidates(session.csv_data, fmt, existing_hashes, errors=errors)
        duplicate_count = sum(1 for c in candidates if c.is_duplicate)

        return PreviewResult(
            session_id=session_id,
            candidates=candidates,
            duplicate_count=duplicate_count,
            errors=errors,
        )

    def confirm(
        self,
        session_id: int,
        format_override: Optional[FormatConfig] = None,
        skip_duplicates: bool = True,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> ConfirmResult:
        """Commit a pending session.

        Args:
            session_id: Import session ID
            format_override: Optional format to use instead of the stored one
            skip_duplicates: Leave out rows whose fingerprint is already known
            should_stop: Optional callable checked between rows and transactions;
                rows extracted before it fires are still committed

        Returns:
            ConfirmResult with import counts

        Raises:
            NotFoundError: If the session or its account doesn't exist
            ConflictError: If the session is not pending
            ValidationError: If the file was discarded or the format is unusable
            ImportFailedError: If committing failed; the session is marked failed
        """
        session = self._get_session(session_id)
        if session.status == ImportStatus.COMPLETED:
            raise ConflictError(import_already_completed(session_id))
        if session.status != ImportStatus.PENDING:
            raise ConflictError(import_not_pending(session_id, session.status.value))
        if session.csv_data is None:
            raise ValidationError(import_data_discarded(session_id))
        fmt = self._resolve_format(session, format_override)

        account = self.account_service.get_account(session.account_id)
        if account is None:
            raise NotFoundError(account_not_found(session.account_id))

        self.db.update_import_session(
            session_id, status=ImportStatus.PROCESSING, format_config=fmt
        )
        stop = _StopFlag(should_stop)

        try:
            existing_hashes = self.db.get_duplicate_hashes(account.id)
            errors: list[str] = []
            candidates = extract_for_commit(
                session.csv_data,
                fmt,
                existing_hashes,
                skip_duplicates,
                errors=errors,
                should_stop=stop,
            )
            transaction_ids = self.db.create_transactions(account.id, candidates)
            categorized = self._categorize(account.profile_id, transaction_ids, stop)

            self.db.update_import_session(
                session_id, status=ImportStatus.COMPLETED, clear_data=True
            )
        except Exception as e:
            logger.exception(f"Import session {session_id} failed")
            self.db.rollback()
            self.db.update_import_session(
                session_id, status=ImportStatus.FAILED, error_message=str(e)
            )
            raise ImportFailedError(f"Import failed: {e}") from e

        data_rows = session.row_count - (1 if fmt.has_header else 0)
        skipped = max(data_rows - len(errors) - len(transaction_ids), 0)
        logger.info(
            f"Import session {session_id} completed: {len(transaction_ids)} imported, "
            f"{skipped} skipped, {len(errors)} failed rows, {categorized} categorized"
        )
        return ConfirmResult(
            session_id=session_id,
            imported=len(transaction_ids),
            skipped=skipped,
            categorized=categorized,
            errors=errors,
            stopped=stop.fired,
        )

    def _categorize(
        self, profile_id: int, transaction_ids: list[int], should_stop: Callable[[], bool]
    ) -> int:
        if not transaction_ids:
            return 0
        rules = self.db.list_rules(profile_id, active_only=True)
        if not rules:
            return 0

        transactions = self.db.list_transactions(transaction_ids=transaction_ids)
        return apply_rules_to_batch(
            transactions,
            rules,
            self.category_service.build_lookup(profile_id),
            on_update=lambda txn: self.db.update_transaction_categorization(
                txn.id, txn.category_id, txn.tags
            ),
            should_stop=should_stop,
        )

    def get_session(self, session_id: int) -> ImportSession:
        """Get import session by ID.

        Raises:
            NotFoundError: If the session doesn't exist
        """
        return self._get_session(session_id)

    def list_sessions(self, account_id: int) -> list[ImportSession]:
        """List import sessions of an account, newest first."""
        return self.db.list_import_sessions(account_id)
