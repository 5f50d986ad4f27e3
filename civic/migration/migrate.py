#!/usr/bin/env python3
"""
Migration Management Helper Script

This script provides a simple interface for applying schema
migrations and checking that the database is ready for the API.

Usage:
    python migration/migrate.py migrate      # Upgrade to the latest revision
    python migration/migrate.py downgrade    # Revert the latest revision
    python migration/migrate.py test         # Test connection and PostGIS
"""

import os
import sys
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, text

CIVIC_ROOT = Path(__file__).resolve().parent.parent

# env.py imports common.models from the service root
sys.path.insert(0, str(CIVIC_ROOT))


def print_usage():
    """Print usage information."""
    print("Migration Management Helper")
    print()
    print("Usage:")
    print("  python migration/migrate.py migrate      # Upgrade to head")
    print("  python migration/migrate.py downgrade    # Revert one revision")
    print("  python migration/migrate.py test         # Test connection")
    print()
    print("Environment Variables Required:")
    print("  DATABASE_URL          PostgreSQL connection string")


def alembic_config() -> Config:
    """Alembic config pointing at the bundled alembic.ini."""
    config = Config(str(CIVIC_ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(CIVIC_ROOT / "migration"))
    return config


def test_connection() -> bool:
    """Check that the database answers and has PostGIS available."""
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        print("ERROR: DATABASE_URL environment variable not set")
        return False

    engine = create_engine(database_url)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            print("✓ Database connection OK")
            available = conn.execute(
                text(
                    "SELECT 1 FROM pg_available_extensions "
                    "WHERE name = 'postgis'"
                )
            ).first()
            if available is None:
                print("✗ PostGIS extension is not available")
                return False
            print("✓ PostGIS extension available")
        return True
    finally:
        engine.dispose()


def main():
    """Main entry point."""
    if len(sys.argv) < 2:
        print_usage()
        sys.exit(1)

    cmd = sys.argv[1].lower()

    if cmd not in ("migrate", "downgrade", "test"):
        print(f"Error: Unknown command '{cmd}'")
        print()
        print_usage()
        sys.exit(1)

    try:
        if cmd == "test":
            print("Testing database connection...")
            print()
            sys.exit(0 if test_connection() else 1)

        elif cmd == "migrate":
            print("Running schema migrations...")
            command.upgrade(alembic_config(), "head")

        elif cmd == "downgrade":
            print("Reverting latest migration...")
            command.downgrade(alembic_config(), "-1")

    except KeyboardInterrupt:
        print()
        print("Operation cancelled by user")
        sys.exit(130)
    except Exception as e:
        print()
        print(f"Error: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
