#!/usr/bin/env python3
"""Database bootstrap: run Alembic migrations before the API starts.

- Always run `alembic upgrade head` on startup.
- If migrations fail on an empty database, fall back to create_all + stamp.
- If the fallback also fails, exit non-zero (don't start with an unknown schema).
"""

import os
import sys
import time
from dotenv import load_dotenv

load_dotenv()


def check_db_ready():
    """Check if database is ready"""
    import psycopg2
    try:
        conn = psycopg2.connect(
            host=os.getenv('POSTGRES_HOST', 'postgres'),
            port=os.getenv('POSTGRES_PORT', '5432'),
            user=os.getenv('POSTGRES_USER', 'postgres'),
            password=os.getenv('POSTGRES_PASSWORD', 'postgres'),
            database=os.getenv('POSTGRES_DB', 'trivia_admin')
        )
        conn.close()
        return True
    except psycopg2.OperationalError:
        return False


def _get_alembic_config():
    from alembic.config import Config

    here = os.path.dirname(os.path.abspath(__file__))
    return Config(os.path.join(here, "alembic.ini"))


def alembic_upgrade_head() -> None:
    """Apply all pending migrations."""
    from alembic import command

    command.upgrade(_get_alembic_config(), "head")


def alembic_stamp_head() -> None:
    """Stamp alembic_version as head (no schema changes)."""
    from alembic import command

    command.stamp(_get_alembic_config(), "head")


def create_schema_directly():
    """Fallback: create schema directly from the ORM models.

    Only used on an empty database, and always followed by `alembic stamp head`.
    """
    from sqlalchemy import inspect, text
    from core.database import Base, engine
    import models  # noqa: F401  (registers tables on Base.metadata)

    if inspect(engine).has_table("app_user"):
        with engine.connect() as conn:
            count = conn.execute(text("SELECT COUNT(*) FROM app_user")).scalar()
        if count:
            raise RuntimeError(
                f"Refusing direct schema creation on non-empty DB (users={count}). "
                f"Run Alembic migrations instead."
            )

    print("Creating schema directly from models...")
    Base.metadata.create_all(engine, checkfirst=True)
    alembic_stamp_head()
    print("Schema created successfully!")


def main():
    print("Waiting for database to be ready...")
    max_retries = 30
    retry_count = 0

    while retry_count < max_retries:
        if check_db_ready():
            print("Database is ready!")
            break
        retry_count += 1
        print(f"Database is unavailable - sleeping (attempt {retry_count}/{max_retries})")
        time.sleep(1)
    else:
        print("ERROR: Database is not ready after maximum retries")
        sys.exit(1)

    try:
        alembic_upgrade_head()
        print("Migrations completed successfully!")
        return
    except Exception as e:
        print(f"ERROR: Alembic upgrade failed: {e}")

    try:
        create_schema_directly()
    except Exception as e:
        print(f"ERROR: Schema bootstrap failed: {e}")
        sys.exit(1)
    print("Schema bootstrap completed via create_all fallback.")


if __name__ == '__main__':
    main()
