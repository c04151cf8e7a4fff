"""Recurring stream ingestion.

Streams arrive from the bank-data aggregator already detected. Each one is
stored at most once per user (keyed by the aggregator's ``stream_id``); a
stream that is already known is skipped, never updated. Categories come from
the learned rules in ``categorizer``.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import RuleWriteFailure, UnresolvedAccountError
from ..models import RecurringStream
from ..schemas import ProviderStream, RecurringStreamCreate
from . import categorizer, ledger
from .normalizer import (
    format_frequency,
    format_payee,
    format_provider_category,
    parse_amount,
    parse_day,
    to_cents,
)

logger = logging.getLogger(__name__)

SKIP_UNRESOLVED_ACCOUNT = "unresolved_account"
SKIP_ALREADY_EXISTS = "already_exists"
SKIP_WRITE_FAILED = "write_failed"


@dataclass
class SyncResult:
    created: list[RecurringStream] = field(default_factory=list)
    skipped: list[tuple[str, str]] = field(default_factory=list)   # (stream_id, reason)


def _flip_sign(amount) -> int:
    """Aggregator amounts are outflow-positive; the ledger stores outflows negative."""
    return -to_cents(parse_amount(amount))


def determine_category(
    db: Session,
    book: categorizer.RuleBook,
    user_id: str,
    stream: ProviderStream,
    category_ids_by_name: dict[str, int],
) -> Optional[int]:
    """Learn from ``stream`` and return the category its rules resolve to.

    Transfers resolve to None without learning anything. A failed rule write
    also yields None; the stream itself is still stored.
    """
    pfc = stream.personal_finance_category
    if categorizer.is_transfer_category(pfc.detailed):
        return None

    name = stream.description or stream.merchant_name or ""
    inferred = category_ids_by_name.get(format_provider_category(pfc.primary))
    try:
        categorizer.learn(db, book, user_id, pfc.primary, name, inferred, pfc.detailed)
    except RuleWriteFailure as exc:
        logger.warning("Skipping categorization of stream %s: %s", stream.stream_id, exc)
        return None

    resolved = categorizer.resolve(book, pfc.primary, name)
    return resolved if resolved is not None else inferred


def _to_record(user_id: str, account_id: int, category_id: Optional[int], stream: ProviderStream) -> RecurringStream:
    last_day = parse_day(stream.last_date)
    return RecurringStream(
        user_id=user_id,
        stream_id=stream.stream_id,
        name=stream.description,
        payee=format_payee(stream.merchant_name),
        account_id=account_id,
        category_id=category_id,
        frequency=format_frequency(stream.frequency),
        average_amount_cents=_flip_sign(stream.average_amount),
        last_amount_cents=_flip_sign(stream.last_amount),
        last_date=last_day.isoformat() if last_day else None,
        is_active=stream.is_active,
    )


def _sync_one(
    db: Session,
    user_id: str,
    stream: ProviderStream,
    accounts: dict[str, int],
    category_ids_by_name: dict[str, int],
    book: categorizer.RuleBook,
) -> Optional[RecurringStream]:
    account_id = accounts.get(stream.account_id)
    if account_id is None:
        raise UnresolvedAccountError(stream.account_id)

    if ledger.stream_exists(db, user_id, stream.stream_id):
        return None

    category_id = determine_category(db, book, user_id, stream, category_ids_by_name)
    record = _to_record(user_id, account_id, category_id, stream)
    try:
        with db.begin_nested():
            ledger.insert_recurring_stream(db, record)
    except IntegrityError:
        # Another writer stored the same stream_id between the check and the insert
        return None
    return record


def sync_streams(db: Session, user_id: str, streams: Iterable[ProviderStream]) -> SyncResult:
    """Store every stream not yet known for ``user_id``.

    Streams whose account cannot be resolved, which already exist, or whose
    insert fails are reported in ``skipped``; none of these stops the batch.
    """
    accounts = ledger.account_map(db, user_id)
    category_ids_by_name = ledger.category_name_map(db, user_id)
    book = categorizer.RuleBook.load(db, user_id)

    result = SyncResult()
    for stream in streams:
        try:
            record = _sync_one(db, user_id, stream, accounts, category_ids_by_name, book)
        except UnresolvedAccountError as exc:
            logger.warning("Skipping stream %s: %s", stream.stream_id, exc)
            result.skipped.append((stream.stream_id, SKIP_UNRESOLVED_ACCOUNT))
            continue
        except SQLAlchemyError as exc:
            logger.warning("Could not store stream %s: %s", stream.stream_id, exc)
            result.skipped.append((stream.stream_id, SKIP_WRITE_FAILED))
            continue
        if record is None:
            logger.debug("Stream %s already stored for user %s", stream.stream_id, user_id)
            result.skipped.append((stream.stream_id, SKIP_ALREADY_EXISTS))
            continue
        result.created.append(record)

    db.commit()
    logger.info(
        "Recurring sync for %s: %d created, %d skipped",
        user_id, len(result.created), len(result.skipped),
    )
    return result


def create_manual_stream(db: Session, user_id: str, payload: RecurringStreamCreate) -> RecurringStream:
    """Store a stream entered by hand; it gets a generated ``stream_id``."""
    if payload.account_id not in {a.id for a in ledger.query_accounts(db, user_id)}:
        raise UnresolvedAccountError(str(payload.account_id))

    record = RecurringStream(
        user_id=user_id,
        stream_id=f"manual-{uuid.uuid4().hex}",
        name=payload.name,
        payee=payload.payee or "Unknown",
        account_id=payload.account_id,
        category_id=payload.category_id,
        frequency=payload.frequency,
        average_amount_cents=to_cents(payload.average_amount),
        last_amount_cents=to_cents(payload.last_amount),
        last_date=payload.last_date.isoformat() if payload.last_date else None,
        is_active=True,
    )
    ledger.insert_recurring_stream(db, record)
    db.commit()
    return record
