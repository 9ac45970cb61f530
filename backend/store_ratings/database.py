"""
Database configuration and session management
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from .config import settings
from .models.base import Base
# Import all models to ensure they're registered with SQLAlchemy
from .models import user, store, rating  # noqa: F401


def enable_sqlite_savepoints(engine: Engine) -> None:
    """
    Let SQLAlchemy drive BEGIN/SAVEPOINT on pysqlite connections.
    pysqlite otherwise issues its own BEGIN and breaks nested transactions.
    """

    @event.listens_for(engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")


if settings.db_driver.startswith('sqlite'):
    engine = create_engine(
        settings.database_url,
        echo=(settings.log_verbosity == "full"),
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_savepoints(engine)
else:
    engine = create_engine(
        settings.database_url,
        echo=(settings.log_verbosity == "full"),
        pool_pre_ping=True,
        pool_recycle=300,
    )

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine = None) -> None:
    """Create all tables that do not exist yet"""
    Base.metadata.create_all(bind=bind or engine)


def get_db():
    """
    Database dependency for FastAPI routes
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
