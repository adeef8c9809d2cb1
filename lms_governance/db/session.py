from __future__ import annotations

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from lms_governance.settings import get_settings


_settings = get_settings()

engine = create_engine(
    _settings.resolved_db_url(),
    connect_args={"check_same_thread": False} if _settings.resolved_db_url().startswith("sqlite") else {},
)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, class_=Session)


def get_db() -> Generator[Session, None, None]:
    """
    Request-scoped DB dependency.

    Governance lookups and route handlers share this session. Audit records
    are written through their own session (see governance/audit.py) so a
    rolled-back request never takes its violation record with it.
    """

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
