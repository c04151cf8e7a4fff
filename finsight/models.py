from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from .database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


CATEGORY_TYPES = ("income", "expense", "transfer")

MATCH_PROVIDER_PRIMARY_CATEGORY = "provider_primary_category"
MATCH_TRANSACTION_NAME = "transaction_name"
MATCH_TYPES = (MATCH_PROVIDER_PRIMARY_CATEGORY, MATCH_TRANSACTION_NAME)


class Account(Base):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(100), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    external_account_id = Column(String(255), nullable=True, index=True)  # aggregator's account ref
    current_balance = Column(Integer, nullable=True)      # cents
    available_balance = Column(Integer, nullable=True)    # cents
    created_at = Column(DateTime, default=_utcnow)

    transactions = relationship("Transaction", back_populates="account")


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(100), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    type = Column(String(20), nullable=False, default="expense")  # income | expense | transfer
    monthly_budget = Column(Integer, nullable=True)       # cents, null = no budget
    created_at = Column(DateTime, default=_utcnow)

    transactions = relationship("Transaction", back_populates="category")

    @property
    def is_transfer(self) -> bool:
        return self.type == "transfer"


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(100), nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    posted_date = Column(String(10), nullable=False, index=True)   # YYYY-MM-DD
    amount_cents = Column(Integer, nullable=False)                 # + inflow, - outflow
    payee = Column(Text, nullable=False, default="")
    provider_category = Column(String(100), nullable=True)         # aggregator primary category
    category_source = Column(String(20), nullable=True)            # "rule" | "manual" | None
    created_at = Column(DateTime, default=_utcnow)

    account = relationship("Account", back_populates="transactions")
    category = relationship("Category", back_populates="transactions")


class RecurringStream(Base):
    __tablename__ = "recurring_streams"
    __table_args__ = (UniqueConstraint("user_id", "stream_id", name="uq_recurring_user_stream"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(100), nullable=False, index=True)
    stream_id = Column(String(255), nullable=False)
    name = Column(Text, nullable=False, default="")
    payee = Column(String(255), nullable=False, default="Unknown")
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    frequency = Column(String(50), nullable=False, default="Unknown")
    average_amount_cents = Column(Integer, nullable=False, default=0)
    last_amount_cents = Column(Integer, nullable=False, default=0)
    last_date = Column(String(10), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=_utcnow)

    account = relationship("Account")
    category = relationship("Category")


class CategorizationRule(Base):
    __tablename__ = "categorization_rules"

    # No uniqueness on (match_type, match_value): duplicates are resolved on read.
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(100), nullable=False, index=True)
    match_type = Column(String(40), nullable=False)     # provider_primary_category | transaction_name
    match_value = Column(String(500), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    priority = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=_utcnow)

    category = relationship("Category")
