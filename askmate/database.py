import logging
from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from askmate.core import config

logger = logging.getLogger(__name__)

DATABASE_URL = config.DATABASE_URL

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, echo=config.SQL_ECHO, connect_args=connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()


def init_db() -> None:
    # Registers every model on Base.metadata before creating tables.
    from askmate.models import answer, classroom, question, user  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def database_unavailable(db: Session | None, exc: SQLAlchemyError) -> HTTPException:
    """Roll back ``db`` and build the opaque 503 returned for store failures."""
    if db is not None:
        db.rollback()
    logger.exception('Database operation failed: %s', exc.__class__.__name__)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail='Database unavailable. Please try again later.',
    )


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)
