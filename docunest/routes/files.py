"""
Document upload/download routes.

Uploads are validated, envelope-encrypted and written to the blob store
before the metadata row is committed. Downloads and previews go through the
access guard first; the blob is only read once the guard allows it.
"""
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import Response
from sqlalchemy import select
from sqlalchemy.orm import Session
from typing import Optional
import logging
from urllib.parse import quote

from docunest.config import get_settings
from docunest.database import get_db
from docunest.errors import DecryptionError
from docunest.events import event_bus
from docunest.models.models import Document, DocumentCategory, User
from docunest.models.schemas import (
    DocumentListResponse,
    DocumentResponse,
    normalize_pin,
    validate_pin_format,
)
from docunest.security.access import AccessGuard
from docunest.storage.backend import StorageBackend, new_blob_name, owner_blob_key
from docunest.storage.encryption import EnvelopeEncryptor
from docunest.storage.validation import FileValidator, FILE_TYPE_CONTENT_TYPES
from docunest.utils.auth import get_pin_hash
from docunest.utils.dependencies import get_current_user, get_encryptor, get_guard, get_storage

router = APIRouter()
logger = logging.getLogger(__name__)


def _content_disposition(disposition: str, filename: str) -> str:
    """
    Header value with an ASCII fallback name and the real name per RFC 5987.

    Response headers are latin-1 on the wire, so non-ASCII names only travel
    percent-encoded in filename*.
    """
    fallback = "".join(c if c.isascii() else "_" for c in filename)
    return f"{disposition}; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


def _parse_tags(tags: Optional[str]) -> list[str]:
    if not tags:
        return []
    return [t.strip() for t in tags.split(",") if t.strip()]


def build_document_response(document: Document) -> DocumentResponse:
    """Build a response from a Document row, leaving out all key material."""
    return DocumentResponse(
        id=document.id,
        filename=document.original_filename,
        file_type=document.file_type,
        content_type=document.content_type,
        file_size=document.file_size,
        category=document.category,
        tags=document.tag_list,
        requires_pin=document.requires_pin,
        has_file_pin=document.pin_hash is not None,
        uploaded_at=document.uploaded_at,
    )


# ─── Upload ───────────────────────────────────────────────────────────

@router.post("/upload", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    category: str = Form(DocumentCategory.OTHER.value),
    tags: Optional[str] = Form(None),
    requires_pin: bool = Form(False),
    pin: Optional[str] = Form(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
    encryptor: EnvelopeEncryptor = Depends(get_encryptor),
):
    """
    Upload and encrypt a document.

    Supplying a per-file PIN marks the document as PIN-protected. Setting
    requires_pin without a PIN protects it with the owner's account PIN.
    """
    settings = get_settings()
    data = await file.read()

    if len(data) > settings.max_upload_size:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large ({len(data)} bytes). "
                   f"Maximum is {settings.max_upload_size // (1024 * 1024)}MB.",
        )

    content_type = file.content_type or "application/octet-stream"
    is_valid, error, safe_filename, file_type = FileValidator.validate_upload(
        data, content_type, file.filename or "unnamed_file"
    )
    if not is_valid:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=error)

    try:
        doc_category = DocumentCategory(category)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid category")

    # A blank PIN field means no per-file PIN
    pin = normalize_pin(pin or "")
    if pin:
        try:
            pin = validate_pin_format(pin)
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    # EncryptionError propagates; nothing has been stored yet
    payload = encryptor.encrypt(data)
    pin_hash = get_pin_hash(pin) if pin else None

    stored_filename = new_blob_name(file_type)
    storage_key = owner_blob_key(current_user.id, stored_filename)

    await storage.store(storage_key, payload.ciphertext)

    document = Document(
        owner_id=current_user.id,
        filename=stored_filename,
        original_filename=safe_filename,
        file_type=file_type,
        content_type=FILE_TYPE_CONTENT_TYPES[file_type],
        file_size=len(data),
        category=doc_category,
        wrapped_key=payload.wrapped_key,
        wrapped_iv=payload.wrapped_iv,
        storage_key=storage_key,
        requires_pin=requires_pin or pin_hash is not None,
        pin_hash=pin_hash,
    )
    document.tag_list = _parse_tags(tags)

    try:
        db.add(document)
        db.commit()
    except Exception:
        db.rollback()
        # No row means nobody can ever decrypt the blob; remove it
        await storage.delete(storage_key)
        raise
    db.refresh(document)

    await event_bus.emit('document.uploaded', {
        'document_id': document.id,
        'user_id': current_user.id,
        'filename': document.original_filename,
        'file_size': document.file_size,
    })

    return build_document_response(document)


# ─── Listing / Metadata ──────────────────────────────────────────────

@router.get("", response_model=DocumentListResponse)
def list_documents(
    category: Optional[DocumentCategory] = None,
    tag: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List the current user's documents, newest first."""
    query = select(Document).where(Document.owner_id == current_user.id)

    if category:
        query = query.where(Document.category == category)
    if tag:
        query = query.where(Document.tags.ilike(f"%{tag}%"))

    documents = db.execute(query.order_by(Document.uploaded_at.desc(), Document.id.desc())).scalars().all()

    return DocumentListResponse(
        count=len(documents),
        documents=[build_document_response(d) for d in documents],
    )


@router.get("/{document_id}", response_model=DocumentResponse)
def get_document_info(
    document_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get metadata about one of the current user's documents."""
    document = db.execute(
        select(Document).where(Document.id == document_id, Document.owner_id == current_user.id)
    ).scalars().first()

    if not document:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")

    return build_document_response(document)


# ─── Download / Preview ──────────────────────────────────────────────

async def _serve_document(
    document_id: int,
    pin: Optional[str],
    inline: bool,
    current_user: User,
    db: Session,
    storage: StorageBackend,
    encryptor: EnvelopeEncryptor,
    guard: AccessGuard,
) -> Response:
    document = db.get(Document, document_id)

    # Raises AuthorizationDenied before anything is read from the blob store
    guard.authorize(current_user.id, document, pin, current_user.pin_hash)

    try:
        ciphertext = await storage.retrieve(document.storage_key)
    except FileNotFoundError:
        logger.error(f"Blob missing for document {document.id}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found on server")

    try:
        data = encryptor.decrypt(ciphertext, document.wrapped_key, document.wrapped_iv)
    except DecryptionError as e:
        logger.error(f"Decryption failed for document {document.id}: {e}")
        raise

    await event_bus.emit('document.downloaded', {
        'document_id': document.id,
        'user_id': current_user.id,
        'filename': document.original_filename,
        'inline': inline,
    })

    disposition = _content_disposition("inline" if inline else "attachment", document.original_filename)
    return Response(
        content=data,
        media_type=document.content_type,
        headers={
            "Content-Disposition": disposition,
            "X-Content-Type-Options": "nosniff",
        },
    )


@router.get("/{document_id}/download")
async def download_document(
    document_id: int,
    pin: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
    encryptor: EnvelopeEncryptor = Depends(get_encryptor),
    guard: AccessGuard = Depends(get_guard),
):
    """Download a document, decrypted on the fly. PIN-protected files need ?pin=."""
    return await _serve_document(document_id, pin, False, current_user, db, storage, encryptor, guard)


@router.get("/{document_id}/preview")
async def preview_document(
    document_id: int,
    pin: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
    encryptor: EnvelopeEncryptor = Depends(get_encryptor),
    guard: AccessGuard = Depends(get_guard),
):
    """Same as download, served inline for in-browser viewing."""
    return await _serve_document(document_id, pin, True, current_user, db, storage, encryptor, guard)


# ─── Delete ───────────────────────────────────────────────────────────

@router.delete("/{document_id}")
async def delete_document(
    document_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    """Delete a document's blob and metadata. Only the owner can delete."""
    document = db.execute(
        select(Document).where(Document.id == document_id, Document.owner_id == current_user.id)
    ).scalars().first()

    if not document:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")

    try:
        await storage.delete(document.storage_key)
    except OSError as e:
        logger.warning(f"Error deleting storage for document {document.id}: {e}")

    payload = {
        'document_id': document.id,
        'user_id': current_user.id,
        'filename': document.original_filename,
    }
    db.delete(document)
    db.commit()

    await event_bus.emit('document.deleted', payload)

    return {"message": "File deleted successfully"}
