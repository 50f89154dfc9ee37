from collections import Counter
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session
from typing import List, Optional

from docunest.database import get_db
from docunest.models.models import Document, DocumentCategory, User
from docunest.models.schemas import CountEntry, DocumentListResponse
from docunest.routes.files import build_document_response
from docunest.utils.dependencies import get_current_user

router = APIRouter()


@router.get("", response_model=DocumentListResponse)
def search_documents(
    q: Optional[str] = None,
    category: Optional[DocumentCategory] = None,
    tag: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Case-insensitive search over the current user's filenames and tags."""
    if not q and not category and not tag:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please provide a search query, category, or tag",
        )

    query = select(Document).where(Document.owner_id == current_user.id)

    if q:
        pattern = f"%{q}%"
        query = query.where(or_(
            Document.filename.ilike(pattern),
            Document.original_filename.ilike(pattern),
            Document.tags.ilike(pattern),
        ))
    if category:
        query = query.where(Document.category == category)
    if tag:
        query = query.where(Document.tags.ilike(f"%{tag}%"))

    documents = db.execute(query.order_by(Document.uploaded_at.desc(), Document.id.desc())).scalars().all()

    return DocumentListResponse(
        count=len(documents),
        documents=[build_document_response(d) for d in documents],
    )


@router.get("/categories", response_model=List[CountEntry])
def list_categories(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Document count per category for the current user."""
    rows = db.execute(
        select(Document.category, func.count(Document.id))
        .where(Document.owner_id == current_user.id)
        .group_by(Document.category)
        .order_by(Document.category)
    ).all()

    return [CountEntry(name=category.value, count=count) for category, count in rows]


@router.get("/tags", response_model=List[CountEntry])
def list_tags(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Tag usage counts for the current user, most used first."""
    tag_rows = db.execute(
        select(Document.tags).where(Document.owner_id == current_user.id, Document.tags.is_not(None))
    ).scalars().all()

    counts: Counter[str] = Counter()
    for tags in tag_rows:
        counts.update(t.strip() for t in tags.split(",") if t.strip())

    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [CountEntry(name=name, count=count) for name, count in ordered]
