"""
Dependency injection functions for FastAPI routes.

These functions can be used with Depends() to inject dependencies
into route handlers.
"""
from fastapi import Depends, HTTPException, status, Header
from sqlalchemy.orm import Session
from typing import Optional
from docunest.database import get_db
from docunest.models.models import User
from docunest.storage.backend import StorageBackend, get_storage_backend
from docunest.storage.encryption import EnvelopeEncryptor, get_file_encryptor
from docunest.security.access import AccessGuard, get_access_guard
from docunest.utils.auth import decode_token


def get_current_user(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db)
) -> User:
    """
    Get current user from Authorization header.

    Expected Authorization header format: "Bearer <token>"

    Raises:
        HTTPException: 401 if token is missing, invalid, or user not found
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access denied. No valid token provided.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Authorization header format. Expected: 'Bearer <token>'",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token_data = decode_token(parts[1])

    if token_data is None or token_data.user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.get(User, token_data.user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found. Token invalid."
        )

    return user


def get_storage() -> StorageBackend:
    return get_storage_backend()


def get_encryptor() -> EnvelopeEncryptor:
    return get_file_encryptor()


def get_guard() -> AccessGuard:
    return get_access_guard()
