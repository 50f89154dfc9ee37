from pydantic import BaseModel, ConfigDict, EmailStr, field_validator
from datetime import datetime
from typing import Optional, List
import re
from docunest.models.models import DocumentCategory

# ASCII digits only; used with fullmatch
PIN_PATTERN = re.compile(r'[0-9]{4,6}')


def normalize_pin(v: str) -> str:
    """The one form a PIN takes before it is hashed or verified."""
    return v.strip()


def validate_pin_format(v: str) -> str:
    """Shared 4-6 digit PIN rule for account and per-file PINs. Returns the normalized PIN."""
    v = normalize_pin(v)
    if not PIN_PATTERN.fullmatch(v):
        raise ValueError('PIN must be 4-6 digits')
    return v


class UserCreate(BaseModel):
    name: str
    email: EmailStr
    password: str

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate display name format and length."""
        v = v.strip()
        if len(v) < 3 or len(v) > 30:
            raise ValueError('Name must be between 3 and 30 characters')
        if not re.match(r'^[a-zA-Z0-9_\s]+$', v):
            raise ValueError('Name can only contain letters, numbers, spaces, and underscores')
        return v

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        """Validate password complexity."""
        if len(v) < 8:
            raise ValueError('Password must be at least 8 characters long')
        if len(v) > 72:
            raise ValueError('Password must be at most 72 characters long')
        if not re.search(r'[A-Z]', v):
            raise ValueError('Password must contain at least one uppercase letter')
        if not re.search(r'[a-z]', v):
            raise ValueError('Password must contain at least one lowercase letter')
        if not re.search(r'[0-9]', v):
            raise ValueError('Password must contain at least one digit')
        return v


class UserLogin(BaseModel):
    email: EmailStr
    password: str

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    has_pin: bool = False
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    user: UserResponse
    token: str
    token_type: str = "bearer"


class TokenData(BaseModel):
    user_id: Optional[int] = None


class PinSetRequest(BaseModel):
    pin: str

    @field_validator('pin')
    @classmethod
    def validate_pin(cls, v: str) -> str:
        return validate_pin_format(v)


class MessageResponse(BaseModel):
    message: str


# Document schemas. Wrapped key material, blob paths and PIN hashes never leave the server.
class DocumentResponse(BaseModel):
    id: int
    filename: str  # Original (display) filename
    file_type: str
    content_type: str
    file_size: int
    category: DocumentCategory
    tags: List[str] = []
    requires_pin: bool
    has_file_pin: bool
    uploaded_at: datetime


class DocumentListResponse(BaseModel):
    count: int
    documents: List[DocumentResponse]


class CountEntry(BaseModel):
    name: str
    count: int
