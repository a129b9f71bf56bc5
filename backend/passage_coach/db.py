from __future__ import annotations
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from .settings import settings


DATABASE_URL = settings.database_url or "sqlite:///./passage_coach.db"

_is_sqlite = DATABASE_URL.startswith("sqlite")
_connect_args = {"check_same_thread": False} if _is_sqlite else {}

engine = create_engine(DATABASE_URL, connect_args=_connect_args, future=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


if _is_sqlite:
	@event.listens_for(engine, "connect")
	def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
		# Attempt responses rely on ON DELETE CASCADE
		cursor = dbapi_connection.cursor()
		cursor.execute("PRAGMA foreign_keys=ON")
		cursor.close()


def get_db():
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
	"""Session for work outside a request (startup, background jobs)."""
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()
