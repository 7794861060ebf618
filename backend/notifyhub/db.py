from __future__ import annotations

from collections.abc import Generator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from notifyhub.core.config import settings


def build_engine(database_url: str | None = None) -> Engine:
    url = database_url or settings.DATABASE_URL
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    return create_engine(url, connect_args=connect_args)


engine = build_engine()


def init_db(bind: Engine | None = None) -> None:
    """Create database tables in environments without migrations."""
    # Table classes must be registered on the metadata before create_all
    import notifyhub.models  # noqa: F401

    SQLModel.metadata.create_all(bind=bind or engine)


def get_engine(request: Request) -> Engine:
    return request.app.state.engine


def get_session(request: Request) -> Generator[Session, None, None]:
    with Session(get_engine(request)) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_session)]
