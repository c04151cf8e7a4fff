"""Ledger store access.

Every read and write the engine performs against the ledger database goes
through this module, so the aggregation and categorization code only ever
sees ORM rows and plain values.
"""

import logging
from collections import defaultdict
from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ..models import Account, CategorizationRule, Category, RecurringStream, Transaction

logger = logging.getLogger(__name__)


# ── Reads ─────────────────────────────────────────────────────────────────────


def query_events(
    db: Session,
    user_id: str,
    start: date,
    end: date,
    account_id: Optional[int] = None,
) -> list[Transaction]:
    """Events for ``user_id`` with ``start <= posted_date <= end``, oldest first."""
    q = (
        db.query(Transaction)
        .options(joinedload(Transaction.category))
        .filter(
            Transaction.user_id == user_id,
            Transaction.posted_date >= start.isoformat(),
            Transaction.posted_date <= end.isoformat(),
        )
    )
    if account_id is not None:
        q = q.filter(Transaction.account_id == account_id)
    return q.order_by(Transaction.posted_date.asc(), Transaction.id.asc()).all()


def query_categories(db: Session, user_id: str) -> list[Category]:
    return db.query(Category).filter(Category.user_id == user_id).order_by(Category.id).all()


def query_accounts(db: Session, user_id: str) -> list[Account]:
    return db.query(Account).filter(Account.user_id == user_id).order_by(Account.id).all()


def query_recurring_streams(db: Session, user_id: str) -> list[RecurringStream]:
    return (
        db.query(RecurringStream)
        .options(joinedload(RecurringStream.account), joinedload(RecurringStream.category))
        .filter(RecurringStream.user_id == user_id)
        .order_by(RecurringStream.id)
        .all()
    )


def query_rules(db: Session, user_id: str) -> list[CategorizationRule]:
    return (
        db.query(CategorizationRule)
        .filter(CategorizationRule.user_id == user_id)
        .order_by(CategorizationRule.id)
        .all()
    )


def get_recurring_stream(db: Session, user_id: str, record_id: int) -> Optional[RecurringStream]:
    return (
        db.query(RecurringStream)
        .filter(RecurringStream.user_id == user_id, RecurringStream.id == record_id)
        .first()
    )


def stream_exists(db: Session, user_id: str, stream_id: str) -> bool:
    return (
        db.query(RecurringStream.id)
        .filter(RecurringStream.user_id == user_id, RecurringStream.stream_id == stream_id)
        .first()
        is not None
    )


def account_map(db: Session, user_id: str) -> dict[str, int]:
    """External (aggregator) account reference → internal account id."""
    return {
        a.external_account_id: a.id
        for a in query_accounts(db, user_id)
        if a.external_account_id
    }


def category_name_map(db: Session, user_id: str) -> dict[str, int]:
    return {c.name: c.id for c in query_categories(db, user_id) if c.name}


def find_siblings(db: Session, stream: RecurringStream) -> list[Transaction]:
    """Ledger events belonging to ``stream``: same user, exact payee match."""
    return (
        db.query(Transaction)
        .filter(Transaction.user_id == stream.user_id, Transaction.payee == stream.payee)
        .order_by(Transaction.posted_date.desc(), Transaction.id.desc())
        .all()
    )


def earliest_event_date(db: Session, user_id: str) -> Optional[date]:
    first = (
        db.query(func.min(Transaction.posted_date))
        .filter(Transaction.user_id == user_id)
        .scalar()
    )
    return date.fromisoformat(first) if first else None


def query_daily_net(db: Session, user_id: str, start: date) -> list[tuple[date, int]]:
    """Net cents per active day from ``start`` onward, oldest first."""
    totals: dict[str, int] = defaultdict(int)
    rows = (
        db.query(Transaction.posted_date, Transaction.amount_cents)
        .filter(Transaction.user_id == user_id, Transaction.posted_date >= start.isoformat())
        .all()
    )
    for posted_date, amount_cents in rows:
        totals[posted_date] += amount_cents
    return [(date.fromisoformat(d), totals[d]) for d in sorted(totals)]


# ── Writes ────────────────────────────────────────────────────────────────────
# Writes only flush; the caller owns the transaction.


def insert_recurring_stream(db: Session, record: RecurringStream) -> RecurringStream:
    db.add(record)
    db.flush()
    return record


def insert_categorization_rule(db: Session, rule: CategorizationRule) -> CategorizationRule:
    db.add(rule)
    db.flush()
    logger.debug(
        "Inserted %s rule %r -> category %s (priority %s)",
        rule.match_type, rule.match_value, rule.category_id, rule.priority,
    )
    return rule


def update_event_category(
    db: Session, event: Transaction, category_id: Optional[int], source: Optional[str] = "rule"
) -> None:
    event.category_id = category_id
    event.category_source = source if category_id is not None else None
    db.flush()
