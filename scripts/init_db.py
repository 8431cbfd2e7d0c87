#!/usr/bin/env python3
"""
Database initialization script for TaskFlow
Creates the SQLite database holding the durable active-timer records
"""

import sqlite3
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from taskflow.core import Config, SQLiteDatabase


def init_database(db_path: Path, force: bool = False) -> bool:
    """Initialize the database with the active_timers schema"""

    if db_path.exists():
        if not force:
            response = input(f"Database already exists at {db_path}. Overwrite? (yes/no): ")
            if response.lower() != 'yes':
                print("Aborting database initialization.")
                return False
        db_path.unlink()

    print(f"Creating database at {db_path}...")
    try:
        db = SQLiteDatabase(db_path, create=True)
    except sqlite3.Error as e:
        print(f"✗ Database error: {e}")
        return False

    if not db.table_exists("active_timers"):
        print("✗ Table active_timers was not created")
        return False

    print("✓ Database initialized successfully")
    print(f"  Location: {db_path}")
    return True


if __name__ == "__main__":
    print("=" * 60)
    print("TaskFlow - Database Initialization")
    print("=" * 60)
    print()

    force = "--force" in sys.argv[1:]
    config = Config()
    success = init_database(config.get_database_path(), force=force)
    sys.exit(0 if success else 1)
