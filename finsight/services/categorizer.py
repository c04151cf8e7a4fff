"""Categorization service.

Rules map a transaction signal to a category. Two signals exist:

- ``transaction_name``: the sanitized payee/transaction name
- ``provider_primary_category``: the aggregator's primary category code

Name rules always beat provider-category rules. Within one key the effective
rule is the one with the highest priority, then the newest. Rules are
append-only, so duplicates for a key are normal and resolved on read.
"""

import logging
import re
from collections import defaultdict
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import RuleWriteFailure
from ..models import (
    MATCH_PROVIDER_PRIMARY_CATEGORY,
    MATCH_TRANSACTION_NAME,
    CategorizationRule,
    Transaction,
)
from . import ledger

logger = logging.getLogger(__name__)

LEARNED_RULE_PRIORITY = 1

# Aggregator detailed categories that mark money moving between the user's own
# accounts. These are never auto-categorized.
TRANSFER_DETAILED_CATEGORIES = frozenset({
    "TRANSFER_IN_DEPOSIT",
    "TRANSFER_IN_CASH_ADVANCES_AND_LOANS",
    "TRANSFER_IN_INVESTMENT_AND_RETIREMENT_FUNDS",
    "TRANSFER_OUT_INVESTMENT_AND_RETIREMENT_FUNDS",
    "TRANSFER_OUT_WITHDRAWAL",
})

_DIGITS_RE = re.compile(r"\d+")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


# ─────────────────────────────────────────────────────────────────────────────
# Keys and tie-break
# ─────────────────────────────────────────────────────────────────────────────


def sanitize_name(name: Optional[str]) -> str:
    """Strip digits, trim, lower-case: ``Check Paid #20143`` → ``check paid #``."""
    return _DIGITS_RE.sub("", name or "").strip().lower()


def is_transfer_category(detailed_category: Optional[str]) -> bool:
    return (detailed_category or "") in TRANSFER_DETAILED_CATEGORIES


def _created_ts(rule: CategorizationRule) -> datetime:
    # SQLite hands back naive datetimes; they were written as UTC.
    created = rule.created_at or _EPOCH
    return created if created.tzinfo else created.replace(tzinfo=timezone.utc)


def pick_effective(candidates: Iterable[CategorizationRule]) -> Optional[CategorizationRule]:
    """Highest priority wins, then most recent ``created_at``, then highest id."""
    return max(
        candidates,
        key=lambda r: (r.priority or 0, _created_ts(r), r.id or 0),
        default=None,
    )


class RuleBook:
    """Rules grouped by ``(match_type, match_value)``."""

    def __init__(self, rules: Iterable[CategorizationRule] = ()):
        self._by_key: dict[tuple[str, str], list[CategorizationRule]] = defaultdict(list)
        for rule in rules:
            self.add(rule)

    @classmethod
    def load(cls, db: Session, user_id: str) -> "RuleBook":
        return cls(ledger.query_rules(db, user_id))

    def add(self, rule: CategorizationRule) -> None:
        self._by_key[(rule.match_type, rule.match_value)].append(rule)

    def candidates(self, match_type: str, match_value: str) -> list[CategorizationRule]:
        return list(self._by_key.get((match_type, match_value), ()))

    def effective(self, match_type: str, match_value: Optional[str]) -> Optional[CategorizationRule]:
        if not match_value:
            return None
        return pick_effective(self._by_key.get((match_type, match_value), ()))

    def effective_rules(self) -> list[CategorizationRule]:
        """One rule per key."""
        return [pick_effective(rules) for rules in self._by_key.values() if rules]

    def __len__(self) -> int:
        return sum(len(rules) for rules in self._by_key.values())


# ─────────────────────────────────────────────────────────────────────────────
# Resolve / learn
# ─────────────────────────────────────────────────────────────────────────────


def resolve(
    book: RuleBook,
    provider_primary_category: Optional[str],
    transaction_name: Optional[str],
) -> Optional[int]:
    """Return the category for a record, or None when no rule applies."""
    name_rule = book.effective(MATCH_TRANSACTION_NAME, sanitize_name(transaction_name))
    if name_rule is not None:
        return name_rule.category_id

    primary_rule = book.effective(MATCH_PROVIDER_PRIMARY_CATEGORY, provider_primary_category)
    if primary_rule is not None:
        return primary_rule.category_id
    return None


def _insert_rule(
    db: Session,
    book: RuleBook,
    user_id: str,
    match_type: str,
    match_value: str,
    category_id: int,
    priority: int,
) -> CategorizationRule:
    rule = CategorizationRule(
        user_id=user_id,
        match_type=match_type,
        match_value=match_value,
        category_id=category_id,
        priority=priority,
        created_at=datetime.now(timezone.utc),
    )
    try:
        with db.begin_nested():
            ledger.insert_categorization_rule(db, rule)
    except SQLAlchemyError as exc:
        raise RuleWriteFailure(f"could not store {match_type} rule {match_value!r}: {exc}") from exc
    book.add(rule)
    return rule


def learn(
    db: Session,
    book: RuleBook,
    user_id: str,
    provider_primary_category: Optional[str],
    transaction_name: Optional[str],
    inferred_category_id: Optional[int],
    provider_detailed_category: Optional[str] = None,
) -> list[CategorizationRule]:
    """Record first-seen rules for a new record; existing rules are left alone.

    Returns the rules that were inserted. Raises ``RuleWriteFailure`` if an
    insert fails; rules inserted before the failure are kept.
    """
    if is_transfer_category(provider_detailed_category) or inferred_category_id is None:
        return []

    created = []
    if provider_primary_category and book.effective(
        MATCH_PROVIDER_PRIMARY_CATEGORY, provider_primary_category
    ) is None:
        created.append(_insert_rule(
            db, book, user_id, MATCH_PROVIDER_PRIMARY_CATEGORY,
            provider_primary_category, inferred_category_id, LEARNED_RULE_PRIORITY,
        ))

    sanitized = sanitize_name(transaction_name)
    if sanitized and book.effective(MATCH_TRANSACTION_NAME, sanitized) is None:
        created.append(_insert_rule(
            db, book, user_id, MATCH_TRANSACTION_NAME,
            sanitized, inferred_category_id, LEARNED_RULE_PRIORITY,
        ))
    return created


def add_user_rule(
    db: Session,
    user_id: str,
    match_type: str,
    match_value: str,
    category_id: int,
    priority: int,
) -> CategorizationRule:
    """Store a rule the user asked for. Name values are sanitized like learned ones."""
    if match_type == MATCH_TRANSACTION_NAME:
        match_value = sanitize_name(match_value)
    else:
        match_value = match_value.strip()
    if not match_value:
        raise ValueError("match_value is empty after normalization")
    rule = _insert_rule(db, RuleBook(), user_id, match_type, match_value, category_id, priority)
    db.commit()
    return rule


# ─────────────────────────────────────────────────────────────────────────────
# Bulk operations
# ─────────────────────────────────────────────────────────────────────────────


def apply_rules(db: Session, user_id: str) -> dict:
    """Categorize every uncategorized event of ``user_id`` from the current rules.

    Manually categorized events are never touched. Returns counts of
    updated / unchanged / total uncategorized events.
    """
    book = RuleBook.load(db, user_id)
    events = (
        db.query(Transaction)
        .filter(Transaction.user_id == user_id, Transaction.category_id.is_(None))
        .all()
    )
    updated = 0
    for event in events:
        category_id = resolve(book, event.provider_category, event.payee)
        if category_id is not None:
            ledger.update_event_category(db, event, category_id, source="rule")
            updated += 1

    if updated:
        db.commit()
    logger.info("Applied %d rules to %d uncategorized events (%d updated)", len(book), len(events), updated)

    return {
        "updated": updated,
        "unchanged": len(events) - updated,
        "total": len(events),
    }
