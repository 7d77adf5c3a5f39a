import logging

import psycopg2
from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT
from pipeline_designer.config import get_db_components
from pipeline_designer.db.init_db import init_database, reset_tables


def drop_postgres_database(db_name: str, db_url_without_name: str):
    """Drop and recreate a PostgreSQL database."""
    print(f"Connecting to PostgreSQL to drop database '{db_name}'...")
    conn = psycopg2.connect(db_url_without_name)
    conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)
    cursor = conn.cursor()

    print("Closing all connections to the database...")
    cursor.execute("""
        SELECT pg_terminate_backend(pg_stat_activity.pid)
        FROM pg_stat_activity
        WHERE pg_stat_activity.datname = %s
        AND pid <> pg_backend_pid();
    """, (db_name,))

    print(f"Dropping database '{db_name}'...")
    # Database names cannot be parameterized in DDL
    cursor.execute(f'DROP DATABASE IF EXISTS "{db_name}"')
    print(f"Creating database '{db_name}'...")
    cursor.execute(f'CREATE DATABASE "{db_name}"')

    cursor.close()
    conn.close()


def reset_database():
    """Wipe every stored project."""
    db_components = get_db_components()
    if db_components["dialect"] == "postgresql":
        drop_postgres_database(db_components["db_name"], db_components["db_url_without_name"])
        init_database()
    else:
        reset_tables()
    print(f"Database '{db_components['db_name']}' has been reset successfully!")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    confirm = input("This will DELETE ALL DATA in the database. Are you sure? (y/n): ")
    if confirm.lower() == 'y':
        reset_database()
    else:
        print("Operation cancelled.")
