from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy import or_, select
from sqlalchemy.orm import Session
from docunest.database import get_db
from docunest.models.models import User
from docunest.models.schemas import (
    AuthResponse,
    MessageResponse,
    PinSetRequest,
    UserCreate,
    UserLogin,
    UserResponse,
)
from docunest.utils.auth import (
    verify_password,
    get_password_hash,
    get_pin_hash,
    create_access_token,
)
from docunest.utils.dependencies import get_current_user
from docunest.utils.rate_limit import limiter
import logging

router = APIRouter()
logger = logging.getLogger(__name__)


def _build_user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        has_pin=bool(user.pin_hash),
        created_at=user.created_at,
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")  # Rate limit: 5 registrations per minute per IP
def register(request: Request, user: UserCreate, db: Session = Depends(get_db)):
    """Register a new user and return a token."""
    existing = db.execute(
        select(User).where(or_(User.email == user.email, User.name == user.name))
    ).scalars().first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User with this email or name already exists"
        )

    new_user = User(
        name=user.name,
        email=user.email,
        hashed_password=get_password_hash(user.password),
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)

    logger.info(f"User registered: {new_user.id}")

    return AuthResponse(user=_build_user_response(new_user), token=create_access_token(new_user.id))


@router.post("/login", response_model=AuthResponse)
@limiter.limit("5/minute")  # Rate limit: 5 login attempts per minute per IP
def login(request: Request, credentials: UserLogin, db: Session = Depends(get_db)):
    """Authenticate user and return a token."""
    db_user = db.execute(select(User).where(User.email == credentials.email)).scalars().first()
    if not db_user or not verify_password(credentials.password, db_user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return AuthResponse(user=_build_user_response(db_user), token=create_access_token(db_user.id))


@router.get("/me", response_model=UserResponse)
def read_me(current_user: User = Depends(get_current_user)):
    return _build_user_response(current_user)


@router.post("/set-pin", response_model=MessageResponse)
def set_pin(
    body: PinSetRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Set or replace the account-level PIN.

    Documents that require a PIN but have none of their own are unlocked
    with this one.
    """
    current_user.pin_hash = get_pin_hash(body.pin)
    db.commit()

    logger.info(f"Account PIN updated for user {current_user.id}")

    return MessageResponse(message="PIN set successfully")
