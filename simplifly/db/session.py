from typing import Generator

from fastapi import Request
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine

from simplifly.core.config import Settings


def create_db_engine(settings: Settings) -> Engine:
    db_url = settings.DATABASE_URL

    # SQLite fix for multithreading
    connect_args = {"check_same_thread": False} if db_url.startswith("sqlite") else {}

    return create_engine(db_url, connect_args=connect_args, pool_pre_ping=True)


def init_db(engine: Engine) -> None:
    # Import models so every table is registered on the metadata
    import simplifly.models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_db(request: Request) -> Generator[Session, None, None]:
    with Session(request.app.state.engine) as session:
        yield session
