from __future__ import annotations

from app.domain.book_key import expand, identity_type, resolve_identity
from app.schemas.books import BookKeyOut, BookLike
from fastapi import APIRouter

router = APIRouter(prefix="/v1", tags=["books"])


@router.post("/books/key", response_model=BookKeyOut)
def resolve_book_key(book: BookLike):
    identity = resolve_identity(book)
    return BookKeyOut(
        book_key=identity.key,
        identity_type=identity_type(identity),
        candidates=sorted(expand(book)),
    )
