from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class BookLike(BaseModel):
    """Book metadata as it arrives from clients and external catalogs.

    Every identifier field accepts the names it has been stored under over
    time; unknown extra fields are ignored.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    book_key: str | None = Field(
        default=None, validation_alias=AliasChoices("book_key", "bookKey")
    )
    id: str | None = None
    key: str | None = None

    openlibrary_work_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "openlibrary_work_key", "openLibraryKey", "openlibrary_key", "work_key"
        ),
    )

    isbn13: str | None = None
    isbn10: str | None = None
    isbn: str | None = None

    google_books_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("google_books_id", "googleBooksId", "google_id"),
    )

    book_uuid: str | None = Field(
        default=None, validation_alias=AliasChoices("book_uuid", "bookUuid", "uuid")
    )

    title: str | None = None
    author: str | None = Field(
        default=None, validation_alias=AliasChoices("author", "authors")
    )
    cover_url: str | None = Field(
        default=None, validation_alias=AliasChoices("cover_url", "coverUrl", "thumbnail")
    )

    @field_validator("*", mode="before")
    @classmethod
    def coerce_to_str(cls, v: Any) -> str | None:
        if v is None:
            return None
        if isinstance(v, (list, tuple)):
            parts = [str(x).strip() for x in v if x is not None and str(x).strip()]
            return ",".join(parts) or None
        s = str(v).strip()
        return s or None

    @property
    def source(self) -> str:
        if self.google_books_id:
            return "google"
        if self.openlibrary_work_key:
            return "openlibrary"
        return "unknown"


class BookKeyOut(BaseModel):
    book_key: str
    identity_type: str
    candidates: list[str]
