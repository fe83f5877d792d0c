"""SQLite connection management for the document store."""

import logging

from peewee import SqliteDatabase
from playhouse.pool import PooledSqliteDatabase

from .consts import DB_MAX_CONNECTIONS, DB_PRAGMAS, DB_STALE_TIMEOUT
from .models import DocumentRecord, database_proxy
from .utils import ensure_parent

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"

database = None


def init_db(db_path: str):
    """Opens ``db_path`` and binds the models to it.

    A file path gets a connection pool. ``:memory:`` gets one connection
    shared by every thread, since each SQLite connection to ``:memory:``
    would otherwise see its own empty database. Calling it again replaces
    the process-wide database; the previous one is closed first.
    """
    global database

    if database is not None:
        close_db()

    if db_path == MEMORY_PATH:
        database = SqliteDatabase(
            MEMORY_PATH,
            pragmas=DB_PRAGMAS,
            thread_safe=False,
            check_same_thread=False,
        )
    else:
        db_path = str(ensure_parent(db_path))
        database = PooledSqliteDatabase(
            db_path,
            max_connections=DB_MAX_CONNECTIONS,
            stale_timeout=DB_STALE_TIMEOUT,
            pragmas=DB_PRAGMAS,
            check_same_thread=False,
        )
    database_proxy.initialize(database)
    logger.info(f"Document database ready: {db_path}")


def create_tables():
    database.create_tables([DocumentRecord], safe=True)
    logger.debug(f"Ensured table: {DocumentRecord._meta.table_name}")


def close_db():
    global database
    if database is None:
        return
    if isinstance(database, PooledSqliteDatabase):
        database.close_all()
    else:
        database.close()
    database = None
    logger.info("Document database closed")
