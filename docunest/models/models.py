from sqlalchemy import Integer, String, DateTime, ForeignKey, Text, Enum as SQLEnum, Boolean, BigInteger, Index
from sqlalchemy.orm import relationship, Mapped, mapped_column
from datetime import datetime
from docunest.database import Base
import enum
from typing import List as TypingList, Optional


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(30), unique=True, index=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    # Account-level PIN (bcrypt); fallback for documents without their own PIN
    pin_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    documents: Mapped[TypingList["Document"]] = relationship(
        "Document", back_populates="owner", cascade="all, delete-orphan"
    )


class DocumentCategory(str, enum.Enum):
    """User-facing document categories."""
    WORK = "Work"
    EDUCATION = "Education"
    ID = "ID"
    CERTIFICATE = "Certificate"
    RESUME = "Resume"
    OTHER = "Other"


class Document(Base):
    """
    An encrypted document owned by exactly one user.

    Encryption: envelope encryption. The body is AES-256-CBC under a per-file
    key and IV; both are wrapped with the master key and stored here as
    base64 text. The ciphertext itself lives in the blob store at storage_key.
    """
    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_owner_uploaded", "owner_id", "uploaded_at"),
        Index("ix_documents_owner_category", "owner_id", "category"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # File metadata
    filename: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)  # Stored name (.enc)
    original_filename: Mapped[str] = mapped_column(String(255), nullable=False)  # Sanitized upload name
    file_type: Mapped[str] = mapped_column(String(10), nullable=False)  # pdf, png, jpg, jpeg, docx
    content_type: Mapped[str] = mapped_column(String(100), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)  # Plaintext bytes
    category: Mapped[DocumentCategory] = mapped_column(
        SQLEnum(DocumentCategory, values_callable=lambda x: [e.value for e in x]),
        default=DocumentCategory.OTHER, nullable=False, index=True
    )
    tags: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # Comma-separated

    # Envelope encryption: wrapped per-file key and IV (base64)
    wrapped_key: Mapped[str] = mapped_column(Text, nullable=False)
    wrapped_iv: Mapped[str] = mapped_column(Text, nullable=False)
    storage_key: Mapped[str] = mapped_column(String(500), nullable=False, unique=True)  # Path in blob store

    # PIN protection
    requires_pin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    pin_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)  # Per-file PIN (bcrypt)

    uploaded_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    owner: Mapped["User"] = relationship("User", back_populates="documents")

    @property
    def tag_list(self) -> TypingList[str]:
        if not self.tags:
            return []
        return [t.strip() for t in self.tags.split(",") if t.strip()]

    @tag_list.setter
    def tag_list(self, values: TypingList[str]) -> None:
        cleaned = [v.strip() for v in values if v and v.strip()]
        self.tags = ",".join(cleaned) if cleaned else None
