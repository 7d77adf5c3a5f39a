from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
import psycopg2
from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT
import logging
import sqlite3

from pipeline_designer.config import settings, get_db_components

logger = logging.getLogger(__name__)

def create_database_if_not_exists():
    """Create the PostgreSQL database if it doesn't exist. SQLite files are created on connect."""
    db_components = get_db_components()
    if db_components["dialect"] != "postgresql":
        return
    db_name = db_components["db_name"]
    
    # Connect to default postgres database to check if our db exists
    conn = psycopg2.connect(db_components["db_url_without_name"])
    conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)
    cursor = conn.cursor()
    
    try:
        # Check if database exists
        cursor.execute("SELECT 1 FROM pg_catalog.pg_database WHERE datname = %s", (db_name,))
        exists = cursor.fetchone()
        
        if not exists:
            logger.info(f"Database '{db_name}' does not exist. Creating...")
            # Note: Database names cannot be parameterized in PostgreSQL CREATE DATABASE
            # db_name is validated through get_db_components() parsing
            cursor.execute(f'CREATE DATABASE "{db_name}"')
            logger.info(f"Database '{db_name}' created successfully")
        else:
            logger.info(f"Database '{db_name}' already exists")
    finally:
        cursor.close()
        conn.close()


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless asked
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def make_engine(db_url: str) -> Engine:
    connect_args = {"check_same_thread": False} if db_url.startswith("sqlite") else {}
    return create_engine(db_url, connect_args=connect_args)

# Create SQLAlchemy engine
engine = make_engine(str(settings.DATABASE_URL))

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create a database session dependency
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
