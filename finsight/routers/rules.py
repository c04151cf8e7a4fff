from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..database import get_db, get_user_id
from ..errors import RuleWriteFailure
from ..models import Category
from ..schemas import ApplyRulesResponse, ResolveResponse, RuleCreate, RuleSchema
from ..services import ledger
from ..services.categorizer import RuleBook, add_user_rule, apply_rules, resolve, sanitize_name

router = APIRouter(prefix="/rules", tags=["rules"])


@router.get("/", response_model=list[RuleSchema], summary="List all rules, marking the effective one per key")
def list_rules(user_id: str = Depends(get_user_id), db: Session = Depends(get_db)):
    rules = ledger.query_rules(db, user_id)
    effective_ids = {r.id for r in RuleBook(rules).effective_rules()}
    rules.sort(key=lambda r: (r.match_type, r.match_value, -r.priority, -r.id))
    return [
        RuleSchema.model_validate(r).model_copy(update={"effective": r.id in effective_ids})
        for r in rules
    ]


@router.post("/", response_model=RuleSchema, status_code=201, summary="Create a rule")
def create_rule(payload: RuleCreate, user_id: str = Depends(get_user_id), db: Session = Depends(get_db)):
    _require_category(db, user_id, payload.category_id)
    try:
        rule = add_user_rule(
            db, user_id, payload.match_type, payload.match_value, payload.category_id, payload.priority
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except RuleWriteFailure as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return RuleSchema.model_validate(rule)


@router.get("/resolve", response_model=ResolveResponse, summary="Preview which category a record would get")
def resolve_category(
    name: str = Query("", description="Transaction or payee name"),
    primary: Optional[str] = Query(None, description="Provider primary category"),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    book = RuleBook.load(db, user_id)
    return ResolveResponse(sanitized_name=sanitize_name(name), category_id=resolve(book, primary, name))


@router.post(
    "/apply",
    response_model=ApplyRulesResponse,
    summary="Categorize every uncategorized transaction from the current rules",
)
def apply(user_id: str = Depends(get_user_id), db: Session = Depends(get_db)):
    return apply_rules(db, user_id)


def _require_category(db: Session, user_id: str, cat_id: int) -> None:
    exists = db.query(Category.id).filter(Category.id == cat_id, Category.user_id == user_id).first()
    if not exists:
        raise HTTPException(status_code=422, detail=f"Category id={cat_id} does not exist.")
