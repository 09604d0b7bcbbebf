import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from ticketing.core.config import settings
from ticketing.core.errors import ConcurrencyConflict, StorageError, TicketingError

logger = logging.getLogger(__name__)


Base = declarative_base()


def create_db_engine(url: str, **kwargs):
    engine = create_engine(url, echo=settings.SQL_ECHO, **kwargs)
    if engine.dialect.name == "sqlite":
        # pysqlite defers BEGIN on its own, which breaks SAVEPOINT handling
        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _on_begin(conn):
            conn.exec_driver_sql("BEGIN")
    return engine


engine = create_db_engine(settings.SQLALCHEMY_DATABASE_URL, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autoflush=True)


@contextmanager
def atomic(db: Session):
    """Run a unit of work as one transaction.

    Commits on success. On failure everything is rolled back and storage
    errors are translated into the core's error kinds.
    """
    try:
        yield db
        db.commit()
    except TicketingError:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        logger.warning(f"Integrity error, transaction rolled back: {exc.orig}")
        raise ConcurrencyConflict("Conflicting concurrent write, please retry") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(f"Storage failure, transaction rolled back: {exc}")
        raise StorageError("Storage unavailable, please retry") from exc
    except Exception:
        db.rollback()
        raise
