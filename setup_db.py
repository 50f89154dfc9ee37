#!/usr/bin/env python3
"""
First-run setup for a DocuNest deployment.

Checks that ENCRYPT_KEY yields a usable master key, creates the blob store
directory, then migrates the database to the latest revision.
"""
from alembic import command
from alembic.config import Config
from pathlib import Path
import sys

from docunest.config import get_settings
from docunest.errors import ConfigurationError
from docunest.storage.encryption import derive_master_key


def check_master_key() -> bool:
    """Refuse to migrate a vault whose uploads could never be decrypted."""
    try:
        derive_master_key(get_settings().encrypt_key)
    except ConfigurationError as e:
        print(f"✗ {e}. Run `python generate_keys.py` and add ENCRYPT_KEY to .env")
        return False

    print("✓ Master key loaded")
    return True


def prepare_blob_store() -> Path:
    settings = get_settings()
    root = Path(settings.storage_local_path)
    if settings.storage_backend == "local":
        root.mkdir(parents=True, exist_ok=True)
        print(f"✓ Blob store ready at {root.resolve()}")
    return root


def run_migrations(config_path: str = "alembic.ini") -> bool:
    """Upgrade users/documents tables to the latest alembic revision."""
    print("Upgrading database to latest version...")
    try:
        command.upgrade(Config(config_path), "head")
    except Exception as e:
        print(f"\n✗ Migration failed: {e}")
        return False

    print("✓ Migrations completed successfully!")
    return True


if __name__ == "__main__":
    print("=" * 60)
    print(" DocuNest Setup".center(60))
    print("=" * 60)
    print()

    if not check_master_key():
        sys.exit(1)
    prepare_blob_store()
    if not run_migrations():
        print("\n⚠ Setup incomplete due to migration errors")
        sys.exit(1)

    print("\nYou can now start the server:")
    print("  python -m uvicorn docunest.main:app --reload")
    print("\nAnd run the client:")
    print("  python client.py")
    print()
