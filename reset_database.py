#!/usr/bin/env python3
"""
Reset database: Drop all tables and re-run migrations.
WARNING: This will DELETE ALL DATA! Encrypted blobs on disk are left alone
and become unreadable once their rows are gone.
"""
from docunest.database import engine, Base
from docunest.models import models  # noqa: F401
from sqlalchemy import text
from setup_db import run_migrations
import sys


def drop_all_tables():
    """Drop all tables, enum types and alembic version tracking."""
    print("=" * 60)
    print(" Dropping All Tables".center(60))
    print("=" * 60)
    print()

    try:
        Base.metadata.drop_all(bind=engine)

        with engine.begin() as conn:
            print("Dropping alembic version tracking...")
            conn.execute(text("DROP TABLE IF EXISTS alembic_version"))

            if engine.dialect.name == "postgresql":
                print("Dropping enum types...")
                conn.execute(text("DROP TYPE IF EXISTS documentcategory CASCADE"))

        print("\n✓ All tables dropped successfully!")
        return True

    except Exception as e:
        print(f"\n✗ Failed to drop tables: {e}")
        return False


def main():
    print("\n" + "=" * 60)
    print(" DATABASE RESET SCRIPT".center(60))
    print("=" * 60)
    print()
    print("⚠  WARNING: This will DELETE ALL DATA in the database!")
    print()

    confirm = input("Are you sure you want to proceed? (type 'yes' to confirm): ").strip()

    if confirm.lower() != 'yes':
        print("\n✗ Reset cancelled. No changes made.")
        sys.exit(0)

    print()

    if not drop_all_tables():
        print("\n⚠ Reset incomplete due to errors")
        sys.exit(1)

    if not run_migrations():
        print("\n⚠ Reset incomplete due to errors")
        sys.exit(1)

    print("\n" + "=" * 60)
    print(" Reset Complete!".center(60))
    print("=" * 60)
    print()


if __name__ == "__main__":
    main()
