"""Canonical book keys.

A book key is the single string identity under which likes and comments for a
book are written. Keys are derived on demand from whatever identifiers the
book metadata carries:

    ol:/works/OL123W      OpenLibrary work
    isbn:9780141439518    ISBN-13 (ISBN-10 input is converted)
    google:abc123         Google Books volume
    uuid:<uuid>           internal books row id
    t:<title>|a:<author>  normalized title/author fallback
    unknown               nothing usable

Older clients stored the same identities under looser spellings
(``/works/OL123W``, bare ISBN digits, ``ISBN:...``). ``expand`` enumerates
those spellings so reads can find every historical row; stores compare them
case-insensitively. Writes always use ``resolve``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Union

from app.domain.normalize import (
    isbn10_to_isbn13,
    isbn13_to_isbn10,
    normalize_isbn,
    normalize_key_text,
    normalize_openlibrary_work,
    normalize_uuid,
)
from app.schemas.books import BookLike

CanonicalKey = str

UNKNOWN_KEY: CanonicalKey = "unknown"


@dataclass(frozen=True)
class OpenLibraryWork:
    work_id: str

    @property
    def key(self) -> CanonicalKey:
        return f"ol:/works/{self.work_id}"


@dataclass(frozen=True)
class Isbn:
    digits: str
    # ISBN-10 spelling the key was converted from, kept for read matching.
    legacy: str | None = field(default=None, compare=False)

    @property
    def key(self) -> CanonicalKey:
        return f"isbn:{self.digits}"


@dataclass(frozen=True)
class GoogleBooksId:
    volume_id: str

    @property
    def key(self) -> CanonicalKey:
        return f"google:{self.volume_id}"


@dataclass(frozen=True)
class Uuid:
    value: str

    @property
    def key(self) -> CanonicalKey:
        return f"uuid:{self.value}"


@dataclass(frozen=True)
class TitleAuthor:
    title: str
    author: str

    @property
    def key(self) -> CanonicalKey:
        return f"t:{self.title}|a:{self.author}"


@dataclass(frozen=True)
class Unknown:
    @property
    def key(self) -> CanonicalKey:
        return UNKNOWN_KEY


BookIdentity = Union[OpenLibraryWork, Isbn, GoogleBooksId, Uuid, TitleAuthor, Unknown]

BookInput = Union[BookLike, Mapping[str, Any], str, None]

UNKNOWN = Unknown()

IDENTITY_TYPES: dict[type, str] = {
    OpenLibraryWork: "openlibrary",
    Isbn: "isbn",
    GoogleBooksId: "google",
    Uuid: "uuid",
    TitleAuthor: "title_author",
    Unknown: "unknown",
}


def _title_author(title: str | None, author: str | None) -> TitleAuthor | None:
    t = normalize_key_text(title)
    a = normalize_key_text(author)
    if t or a:
        return TitleAuthor(t, a)
    return None


def _isbn(digits: str) -> Isbn:
    """ISBN-10s are keyed by their 978 ISBN-13 so both spellings write one key."""
    if len(digits) == 10:
        converted = isbn10_to_isbn13(digits)
        if converted:
            return Isbn(converted, legacy=digits)
    return Isbn(digits)


def parse_key(raw: str | None) -> BookIdentity | None:
    """Parse a stored or client-supplied key string of any historical style."""
    if not raw:
        return None
    s = raw.strip()
    if not s or s.lower() == UNKNOWN_KEY:
        return None

    scheme, sep, rest = s.partition(":")
    if sep:
        scheme = scheme.strip().lower()
        rest = rest.strip()
        if scheme == "isbn":
            digits = normalize_isbn(rest)
            return _isbn(digits) if digits else None
        if scheme == "google":
            return GoogleBooksId(rest) if rest else None
        if scheme in ("uuid", "id"):
            u = normalize_uuid(rest)
            if u:
                return Uuid(u)
            # "id:" was also used as a generic wrapper around other keys
            return parse_key(rest) if scheme == "id" else None
        if scheme == "t":
            title, _, author = rest.partition("|a:")
            return _title_author(title, author)
        if scheme == "ol":
            work = normalize_openlibrary_work(rest)
            return OpenLibraryWork(work) if work else None

    work = normalize_openlibrary_work(s)
    if work:
        return OpenLibraryWork(work)
    digits = normalize_isbn(s)
    if digits:
        return _isbn(digits)
    u = normalize_uuid(s)
    if u:
        return Uuid(u)
    return None


def coerce_book(book: BookLike | Mapping[str, Any]) -> BookLike:
    if isinstance(book, BookLike):
        return book
    return BookLike.model_validate(dict(book))


def _identities(book: BookInput) -> Iterator[BookIdentity]:
    """Yield every identity the input carries, highest priority first."""
    if book is None:
        return
    if isinstance(book, str):
        parsed = parse_key(book)
        if parsed is not None:
            yield parsed
        return

    b = coerce_book(book)
    generic = [p for p in (parse_key(v) for v in (b.book_key, b.key)) if p is not None]
    # A bare number in `id` is a row id, not an ISBN; only a prefixed one counts.
    parsed_id = parse_key(b.id)
    if parsed_id is not None and (
        not isinstance(parsed_id, Isbn) or (b.id or "").lower().startswith("isbn")
    ):
        generic.append(parsed_id)

    # 1) OpenLibrary work
    work = normalize_openlibrary_work(b.openlibrary_work_key)
    if work:
        yield OpenLibraryWork(work)
    yield from (p for p in generic if isinstance(p, OpenLibraryWork))

    # 2) ISBN: 13, then 10, then generic isbn
    for raw in (b.isbn13, b.isbn10, b.isbn):
        digits = normalize_isbn(raw)
        if digits:
            yield _isbn(digits)
    yield from (p for p in generic if isinstance(p, Isbn))

    # 3) Google Books
    if b.google_books_id:
        yield GoogleBooksId(b.google_books_id)
    yield from (p for p in generic if isinstance(p, GoogleBooksId))

    # 4) UUID: dedicated field, or a generic id that is itself a valid UUID
    u = normalize_uuid(b.book_uuid)
    if u:
        yield Uuid(u)
    yield from (p for p in generic if isinstance(p, Uuid))

    # 5) Title/author
    ta = _title_author(b.title, b.author)
    if ta is not None:
        yield ta
    yield from (p for p in generic if isinstance(p, TitleAuthor))


def resolve_identity(book: BookInput) -> BookIdentity:
    return next(_identities(book), UNKNOWN)


def resolve(book: BookInput) -> CanonicalKey:
    """Return the canonical key for a book, ``"unknown"`` when none applies."""
    return resolve_identity(book).key


def identity_type(identity: BookIdentity) -> str:
    return IDENTITY_TYPES[type(identity)]


def _scheme_variants(scheme: str, value: str) -> set[str]:
    return {f"{scheme}:{value}", f"{scheme.upper()}:{value}"}


def _variants(identity: BookIdentity) -> set[str]:
    if isinstance(identity, OpenLibraryWork):
        w = identity.work_id
        return {
            identity.key,
            f"OL:/works/{w}",
            f"/works/{w}",
            f"works/{w}",
            w,
            f"ol:{w}",
        }

    if isinstance(identity, Isbn):
        out: set[str] = set()
        d = identity.digits
        other = isbn10_to_isbn13(d) if len(d) == 10 else isbn13_to_isbn10(d)
        for digits in filter(None, {d, other, identity.legacy}):
            spellings = {digits, digits.lower()}
            for s in spellings:
                out |= _scheme_variants("isbn", s)
                out.add(s)
        return out

    if isinstance(identity, GoogleBooksId):
        return {identity.key, identity.volume_id}

    if isinstance(identity, Uuid):
        u = identity.value
        return {identity.key, f"id:{u}", u, u.upper()}

    return {identity.key}


def expand(book: BookInput) -> frozenset[str]:
    """Return every key spelling that stored rows for this book may carry.

    For query use only; never write a value from this set.
    """
    out: set[str] = {resolve(book)}
    if isinstance(book, str) and book.strip():
        out.add(book.strip())
    for identity in _identities(book):
        out |= _variants(identity)
    return frozenset(out)
