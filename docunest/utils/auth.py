from docunest.models.schemas import TokenData
from docunest.config import get_settings
from jose import JWTError, jwt
import sys
import io
from typing import Optional
from datetime import datetime, timedelta, timezone

# Suppress bcrypt version warning during passlib import
# This is a known compatibility issue between passlib 1.7.4 and bcrypt 4.x
_stderr = sys.stderr
try:
    sys.stderr = io.StringIO()
    from passlib.context import CryptContext
finally:
    sys.stderr = _stderr


settings = get_settings()

# Passwords and PINs share one bcrypt context (salted, slow)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=12)

ALGORITHM = "HS256"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def get_pin_hash(pin: str) -> str:
    return pwd_context.hash(pin)


def verify_pin(pin: str, pin_hash: str) -> bool:
    """Check a PIN against a bcrypt hash. A malformed stored hash never matches."""
    try:
        return pwd_context.verify(pin, pin_hash)
    except ValueError:
        return False


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode = {"sub": str(user_id), "exp": expire}
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[TokenData]:
    try:
        payload = jwt.decode(token, settings.secret_key,
                             algorithms=[ALGORITHM])
        subject: str | None = payload.get("sub")
        if subject is None or not subject.isdigit():
            return None
        return TokenData(user_id=int(subject))
    except JWTError:
        return None
