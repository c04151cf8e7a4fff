from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db, get_user_id
from ..errors import UnresolvedAccountError
from ..schemas import (
    ProviderStream,
    RecurringStreamCreate,
    RecurringStreamSchema,
    SkippedStream,
    SyncResponse,
    TransactionSchema,
)
from ..services import ledger
from ..services.recurring_sync import create_manual_stream, sync_streams

router = APIRouter(prefix="/recurring", tags=["recurring"])


@router.get("/", response_model=list[RecurringStreamSchema], summary="List recurring streams")
def list_streams(user_id: str = Depends(get_user_id), db: Session = Depends(get_db)):
    return ledger.query_recurring_streams(db, user_id)


@router.post(
    "/sync",
    response_model=SyncResponse,
    summary="Store newly detected recurring streams from the aggregator",
)
def sync(
    streams: list[ProviderStream],
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    result = sync_streams(db, user_id, streams)
    return SyncResponse(
        created=[RecurringStreamSchema.model_validate(r) for r in result.created],
        skipped=[SkippedStream(stream_id=sid, reason=reason) for sid, reason in result.skipped],
    )


@router.post("/", response_model=RecurringStreamSchema, status_code=201, summary="Add a recurring stream by hand")
def create_stream(
    payload: RecurringStreamCreate,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    try:
        return create_manual_stream(db, user_id, payload)
    except UnresolvedAccountError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get(
    "/{record_id}/transactions",
    response_model=list[TransactionSchema],
    summary="Ledger events that belong to a recurring stream",
)
def stream_transactions(record_id: int, user_id: str = Depends(get_user_id), db: Session = Depends(get_db)):
    stream = ledger.get_recurring_stream(db, user_id, record_id)
    if stream is None:
        raise HTTPException(status_code=404, detail="Recurring stream not found.")
    return ledger.find_siblings(db, stream)
