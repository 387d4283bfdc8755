"""Database engine, sessions and transactions for the billing store.

Every public engine operation runs inside exactly one ``Database.transaction()``.
On SQLite each transaction is opened with ``BEGIN IMMEDIATE``, which takes
the database write lock up front so check-then-write sequences (single
running timer, overlap checks, invoice consumption) are serialized against
other writers. Other backends lock the singleton settings row instead when
``lock=True`` is requested.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from billing_engine.config.settings import BillingSystemConfig
from billing_engine.errors import InternalError
from billing_engine.storage.tables import AppSettingsRow, Base

logger = logging.getLogger(__name__)

SETTINGS_ROW_ID = 1


def _configure_sqlite(engine: Engine) -> None:
    """Enable foreign keys and immediate transactions on SQLite connections."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Hand transaction control to SQLAlchemy so the BEGIN below is ours
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=ON")
        finally:
            cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    """Owns the SQLAlchemy engine and hands out transactional sessions.

    Example:
        >>> db = Database("sqlite://")
        >>> db.init_db()
        >>> with db.transaction() as session:
        ...     session.get(AppSettingsRow, 1).next_invoice_number
        1
    """

    def __init__(self, url: str, echo: bool = False, engine: Optional[Engine] = None):
        self.url = url
        self.engine = engine or create_engine(url, echo=echo)
        if self.engine.dialect.name == "sqlite":
            _configure_sqlite(self.engine)
        self._session_factory = sessionmaker(
            bind=self.engine, autoflush=True, expire_on_commit=False
        )
        logger.debug(f"Database engine created for dialect {self.engine.dialect.name}")

    @classmethod
    def from_settings(cls, settings: BillingSystemConfig) -> "Database":
        # SQL_ECHO is applied through logging configuration
        return cls(settings.database_url)

    @property
    def is_sqlite(self) -> bool:
        return self.engine.dialect.name == "sqlite"

    def init_db(self, company_name: Optional[str] = None) -> None:
        """Create missing tables and the singleton settings row."""
        Base.metadata.create_all(self.engine)
        with self.transaction() as session:
            settings = session.get(AppSettingsRow, SETTINGS_ROW_ID)
            if settings is None:
                session.add(
                    AppSettingsRow(
                        id=SETTINGS_ROW_ID,
                        company_name=company_name,
                        next_invoice_number=1,
                    )
                )
                logger.info("Initialized billing database settings")

    def drop_all(self) -> None:
        Base.metadata.drop_all(self.engine)

    @contextmanager
    def transaction(self, lock: bool = False) -> Iterator[Session]:
        """Yield a session whose work is committed on success.

        Any exception rolls the transaction back. SQLAlchemy errors are logged
        with full detail and re-raised as ``InternalError``; every other
        exception propagates unchanged.

        Args:
            lock: Serialize against other writers before the first read
                (implicit on SQLite)
        """
        session = self._session_factory()
        try:
            if lock and not self.is_sqlite:
                session.execute(
                    select(AppSettingsRow)
                    .where(AppSettingsRow.id == SETTINGS_ROW_ID)
                    .with_for_update()
                )
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.exception(f"Storage failure, transaction rolled back: {e}")
            raise InternalError() from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()
