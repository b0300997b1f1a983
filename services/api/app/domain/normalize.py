from __future__ import annotations

import re
import unicodedata

_ol_work = re.compile(r"OL\d+W", re.IGNORECASE)
_isbn_label = re.compile(r"^isbn(?:-?1[03])?[:\s]*", re.IGNORECASE)
_isbn_noise = re.compile(r"[\s\-]+")
_isbn13 = re.compile(r"[0-9]{13}")
_isbn10 = re.compile(r"[0-9]{9}[0-9X]")
_uuid = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}",
    re.IGNORECASE,
)
_non_alnum = re.compile(r"[^a-z0-9]+")

KEY_TEXT_MAX_LEN = 50


def normalize_openlibrary_work(*candidates: str | None) -> str | None:
    """Return the first ``OL<digits>W`` work id found in any candidate.

    Candidates may be ``ol:/works/OL1W``, ``/works/OL1W``, ``works/OL1W``,
    a bare id or a full openlibrary.org URL.
    """
    for raw in candidates:
        if not raw:
            continue
        m = _ol_work.search(raw)
        if m:
            return m.group(0).upper()
    return None


def normalize_isbn(raw: str | None) -> str | None:
    """Return a validated ISBN-13 or ISBN-10, or None.

    - Removes an ``ISBN``/``ISBN-13`` label, hyphens and whitespace.
    - ISBN-13: exactly 13 digits.
    - ISBN-10: nine digits plus a digit or ``X`` check character.
    - Checksums are not verified.
    """
    if not raw:
        return None
    cleaned = _isbn_label.sub("", raw.strip())
    cleaned = _isbn_noise.sub("", cleaned).upper()
    if _isbn13.fullmatch(cleaned) or _isbn10.fullmatch(cleaned):
        return cleaned
    return None


def normalize_uuid(raw: str | None) -> str | None:
    if not raw:
        return None
    s = raw.strip()
    if _uuid.fullmatch(s):
        return s.lower()
    return None


def normalize_key_text(raw: str | None) -> str:
    """Fold free text into the compact form used by title/author keys."""
    if not raw:
        return ""
    s = unicodedata.normalize("NFD", raw.casefold())
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    s = _non_alnum.sub("", s)
    return s[:KEY_TEXT_MAX_LEN]


def _isbn13_check_digit(first12: str) -> str:
    total = sum(int(d) * (1 if i % 2 == 0 else 3) for i, d in enumerate(first12))
    return str((10 - total % 10) % 10)


def _isbn10_check_digit(first9: str) -> str:
    total = sum(int(d) * (10 - i) for i, d in enumerate(first9))
    check = (11 - total % 11) % 11
    return "X" if check == 10 else str(check)


def isbn10_to_isbn13(isbn10: str) -> str | None:
    if not _isbn10.fullmatch(isbn10):
        return None
    body = "978" + isbn10[:9]
    return body + _isbn13_check_digit(body)


def isbn13_to_isbn10(isbn13: str) -> str | None:
    # Only the 978 prefix has an ISBN-10 counterpart.
    if not _isbn13.fullmatch(isbn13) or not isbn13.startswith("978"):
        return None
    body = isbn13[3:12]
    return body + _isbn10_check_digit(body)
