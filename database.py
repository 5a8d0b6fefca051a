"""
Persistence gateway.

Handlers never touch an engine or a global session: each request gets a
``Store`` wrapping its own SQLAlchemy session through the ``get_store``
dependency, and tests swap in a Store bound to an in-memory database.
"""
from contextlib import contextmanager
from typing import Any, Iterable, List, Optional

from sqlalchemy import create_engine, event, func, inspect, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

import config
from logger import get_logger

log = get_logger("database")


class Base(DeclarativeBase):
    pass


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(url: str, **kwargs) -> Engine:
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    engine = create_engine(url, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


engine = make_engine(config.DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(bind: Optional[Engine] = None) -> None:
    import models  # noqa: F401  registers the tables on Base.metadata

    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    log.info(f"Database schema ready on {bind.url.render_as_string(hide_password=True)}")


def table_names(bind: Optional[Engine] = None) -> List[str]:
    return inspect(bind or engine).get_table_names()


def _criteria(model, filters: dict) -> list:
    return [getattr(model, key) == value for key, value in filters.items()]


class Store:
    """Create/read/update/delete/query operations over one session."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, obj: Any) -> Any:
        self.session.add(obj)
        self.session.flush()
        return obj

    def get(self, model, ident: int, fresh: bool = False) -> Optional[Any]:
        # fresh re-reads the row and its eager relationships from the database
        return self.session.get(model, ident, populate_existing=fresh)

    def find_one(self, model, **filters) -> Optional[Any]:
        stmt = select(model).where(*_criteria(model, filters)).limit(1)
        return self.session.scalars(stmt).first()

    def list(
        self,
        model,
        offset: int = 0,
        limit: Optional[int] = None,
        order_by: Iterable = (),
        **filters,
    ) -> List[Any]:
        stmt = select(model).where(*_criteria(model, filters))
        stmt = stmt.order_by(*(order_by or (model.id,)))
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.scalars(stmt).all())

    def count(self, model, **filters) -> int:
        stmt = select(func.count(model.id)).where(*_criteria(model, filters))
        return self.session.scalar(stmt) or 0

    def delete(self, obj: Any) -> None:
        self.session.delete(obj)
        self.session.flush()

    def refresh(self, obj: Any) -> Any:
        self.session.refresh(obj)
        return obj

    def commit(self) -> None:
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    @contextmanager
    def transaction(self):
        """Commit everything written inside the block, or nothing."""
        try:
            yield self
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise


def get_store():
    session = SessionLocal()
    try:
        yield Store(session)
    finally:
        session.close()
