import logging
import re
from pathlib import Path
from typing import Generator

from fastapi import Header
from sqlalchemy import create_engine, Engine, inspect
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from .config import DATABASE_URL

logger = logging.getLogger(__name__)

Base = declarative_base()

# Alembic script directory, used when running migrations programmatically
PROJECT_DIR = Path(__file__).parent.parent
ALEMBIC_DIR = PROJECT_DIR / "alembic"

_engines: dict[str, Engine] = {}


def _sanitize_user_id(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.@-]", "", value)[:100]


def get_or_create_engine(db_url: str = DATABASE_URL) -> Engine:
    if db_url not in _engines:
        connect_args = {"check_same_thread": False} if db_url.startswith("sqlite") else {}
        engine = create_engine(db_url, connect_args=connect_args)
        Base.metadata.create_all(bind=engine)
        _engines[db_url] = engine
    return _engines[db_url]


def _run_alembic_upgrade(db_url: str, *, is_new_db: bool = False) -> None:
    """Bring the ledger schema to the Alembic head revision.

    - Brand-new DBs (``is_new_db=True``): ``create_all`` already built the full
      current schema in this process, so the head revision is only stamped.
    - Existing DBs: ``upgrade head`` applies any pending migrations.
    """
    from alembic import command
    from alembic.config import Config

    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", str(ALEMBIC_DIR))
    alembic_cfg.set_main_option("sqlalchemy.url", db_url)

    if is_new_db:
        command.stamp(alembic_cfg, "head")
        return
    command.upgrade(alembic_cfg, "head")


def init_db(db_url: str = DATABASE_URL) -> Engine:
    """Create tables and run migrations for the ledger database."""
    probe = create_engine(db_url)
    try:
        is_new_db = "alembic_version" not in inspect(probe).get_table_names()
    finally:
        probe.dispose()

    engine = get_or_create_engine(db_url)
    _run_alembic_upgrade(db_url, is_new_db=is_new_db)
    logger.info("Ledger database ready at %s", engine.url.render_as_string(hide_password=True))
    return engine


def get_user_id(x_user_id: str = Header(default="default")) -> str:
    return _sanitize_user_id(x_user_id) or "default"


def get_db() -> Generator[Session, None, None]:
    engine = get_or_create_engine()
    _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = _SessionLocal()
    try:
        yield db
    finally:
        db.close()
