"""SQLAlchemy models for spendtrail database."""

from datetime import datetime, UTC
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def _now() -> datetime:
    return datetime.now(UTC)


class Profile(Base):
    """Profile model owning accounts, categories, formats and rules."""

    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    # Relationships
    accounts = relationship("Account", back_populates="profile", cascade="all, delete-orphan")
    categories = relationship("Category", back_populates="profile", cascade="all, delete-orphan")
    rules = relationship("CategorizationRule", back_populates="profile", cascade="all, delete-orphan")
    import_formats = relationship("ImportFormat", back_populates="profile", cascade="all, delete-orphan")


class Account(Base):
    """Bank account model."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    profile_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    name = Column(String, nullable=False)
    bank_name = Column(String, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (UniqueConstraint("profile_id", "name", name="uq_profile_account_name"),)

    # Relationships
    profile = relationship("Profile", back_populates="accounts")
    transactions = relationship("Transaction", back_populates="account", cascade="all, delete-orphan")
    import_sessions = relationship("ImportSession", back_populates="account", cascade="all, delete-orphan")


class Category(Base):
    """Category model. Names are unique per profile, ignoring case."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    profile_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    # Relationships
    profile = relationship("Profile", back_populates="categories")
    transactions = relationship("Transaction", back_populates="category")


class Transaction(Base):
    """Transaction model."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    date = Column(Date, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(String, nullable=False, default="")
    duplicate_hash = Column(String(64), nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    notes = Column(String, nullable=True)
    imported_at = Column(DateTime, default=_now, nullable=False)

    # Not unique: duplicates can be imported on purpose
    __table_args__ = (Index("ix_transactions_account_hash", "account_id", "duplicate_hash"),)

    # Relationships
    account = relationship("Account", back_populates="transactions")
    category = relationship("Category", back_populates="transactions")


class ImportFormat(Base):
    """Saved import format model; ``config`` holds the FormatConfig schema."""

    __tablename__ = "import_formats"

    id = Column(Integer, primary_key=True)
    profile_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    name = Column(String, nullable=False)
    bank_name = Column(String, nullable=True)
    config = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (UniqueConstraint("profile_id", "name", name="uq_profile_format_name"),)

    # Relationships
    profile = relationship("Profile", back_populates="import_formats")


class ImportSession(Base):
    """Import session model."""

    __tablename__ = "import_sessions"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    filename = Column(String, nullable=False)
    row_count = Column(Integer, default=0, nullable=False)
    status = Column(String, default="pending", nullable=False)
    error_message = Column(Text, nullable=True)
    format_config = Column(JSON, nullable=True)
    csv_data = Column(LargeBinary, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, nullable=True, onupdate=_now)

    # Relationships
    account = relationship("Account", back_populates="import_sessions")


class CategorizationRule(Base):
    """Categorization rule model; ``rule_document`` holds the TOML source."""

    __tablename__ = "categorization_rules"

    id = Column(Integer, primary_key=True)
    profile_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    name = Column(String, nullable=False)
    priority = Column(Integer, default=0, nullable=False)
    rule_document = Column(Text, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    # Relationships
    profile = relationship("Profile", back_populates="rules")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
