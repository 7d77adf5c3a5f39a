"""
Database initialization utilities.
"""
import logging
from pathlib import Path
from pipeline_designer.db.models import Base
from pipeline_designer.db.database import engine, create_database_if_not_exists
from pipeline_designer.config import get_db_components

logger = logging.getLogger(__name__)


def ensure_sqlite_directory():
    """Make sure the directory holding a SQLite database file exists."""
    db_components = get_db_components()
    if db_components["dialect"] != "sqlite" or db_components["db_name"] in ("", ":memory:"):
        return
    Path(db_components["db_name"]).parent.mkdir(parents=True, exist_ok=True)


def create_tables():
    """Create the project, node and connection tables if missing."""
    tables = ", ".join(sorted(Base.metadata.tables))
    logger.info(f"Ensuring tables exist: {tables}")
    Base.metadata.create_all(bind=engine)


def reset_tables():
    """Drop every stored project and recreate empty tables."""
    logger.warning(f"Dropping all pipeline tables on {engine.url.render_as_string(hide_password=True)}")
    Base.metadata.drop_all(bind=engine)
    create_tables()
    logger.info("Pipeline tables recreated")


def init_database():
    """Create the database (PostgreSQL) or its directory (SQLite), then the tables."""
    ensure_sqlite_directory()
    create_database_if_not_exists()
    create_tables()
    logger.info("Database ready")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_database()
