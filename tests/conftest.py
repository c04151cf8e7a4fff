from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from finsight.database import Base, get_db
from finsight.main import app
from finsight.models import Account, Category, Transaction
from finsight.security import require_api_auth

USER = "default"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = SessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[require_api_auth] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


# ── Builders ──────────────────────────────────────────────────────────────────


def add_account(db, name="Checking", external_id: Optional[str] = "ext-checking", user_id=USER, **kw) -> Account:
    account = Account(user_id=user_id, name=name, external_account_id=external_id, **kw)
    db.add(account)
    db.commit()
    return account


def add_category(db, name, type="expense", monthly_budget: Optional[int] = None, user_id=USER) -> Category:
    category = Category(user_id=user_id, name=name, type=type, monthly_budget=monthly_budget)
    db.add(category)
    db.commit()
    return category


def add_event(db, account, posted_date, amount_cents, payee="", category=None, user_id=USER, **kw) -> Transaction:
    event = Transaction(
        user_id=user_id,
        account_id=account.id,
        category_id=category.id if category else None,
        posted_date=posted_date,
        amount_cents=amount_cents,
        payee=payee,
        **kw,
    )
    db.add(event)
    db.commit()
    return event
