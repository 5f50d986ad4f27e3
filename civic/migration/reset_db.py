#!/usr/bin/env python3
"""
Reset database - Drop all tables and clear alembic version history.
WARNING: This will delete ALL data!
"""

import os
import sys

from sqlalchemy import create_engine, text

# Children before parents so foreign keys never block a drop
TABLES = ("likes", "solutions", "resources", "problems", "users")


def get_database_url():
    """Get database URL from environment."""
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        print("ERROR: DATABASE_URL environment variable not set")
        sys.exit(1)
    return database_url


def reset_database():
    """Drop all tables and clear alembic version."""
    database_url = get_database_url()
    engine = create_engine(database_url)

    print("WARNING: This will drop ALL tables and delete ALL data!")
    print(f"Database: {database_url.split('@')[1] if '@' in database_url else database_url}")

    with engine.connect() as conn:
        print("\n1. Dropping tables...")
        for table in TABLES:
            conn.execute(text(f"DROP TABLE IF EXISTS {table} CASCADE"))
            print(f"   ✓ Dropped {table}")

        print("\n2. Clearing alembic version history...")
        conn.execute(text("DROP TABLE IF EXISTS alembic_version CASCADE"))
        print("   ✓ Cleared alembic_version")

        conn.commit()

    engine.dispose()
    print("\n✓ Database reset complete!")
    print("\nNext step:")
    print("  python migration/migrate.py migrate")


if __name__ == "__main__":
    try:
        reset_database()
    except Exception as e:
        print(f"\nERROR: {e}")
        sys.exit(1)
