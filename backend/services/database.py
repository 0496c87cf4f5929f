"""SQLAlchemy engine and per-request sessions for the history table."""

import logging
import os
from collections.abc import Iterator
from functools import lru_cache

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session

from models.prompt_run import Base

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./prompt_runs.db"


def get_database_url() -> str:
    """Database URL from env or a local SQLite file."""
    return os.environ.get("DATABASE_URL", "").strip() or DEFAULT_DATABASE_URL


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    url = get_database_url()
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


def init_db(engine: Engine | None = None) -> None:
    engine = engine or get_engine()
    Base.metadata.create_all(engine)
    logger.info("[database] Tables ready on %s", engine.url.render_as_string(hide_password=True))


def get_session() -> Iterator[Session]:
    """FastAPI dependency: one session per request, closed afterwards."""
    with Session(get_engine()) as session:
        yield session
