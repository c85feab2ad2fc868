from __future__ import annotations

from typing import Iterable, Optional

from fieldops_api.services.ledger import DirectoryEntry


def normalize_key(s: Optional[str]) -> str:
    return (s or "").strip().casefold()


def find_by_email(engineers: Iterable[DirectoryEntry], email: Optional[str]) -> Optional[DirectoryEntry]:
    want = normalize_key(email)
    if not want:
        return None
    for eng in engineers:
        if normalize_key(eng.email) == want:
            return eng
    return None


def resolve_engineer_name(engineers: Iterable[DirectoryEntry], email: Optional[str]) -> Optional[str]:
    """
    Authenticated email → display name used as the ledger join key.
    Returns None when the directory has no entry; callers treat that as a
    zero summary, not an error.
    """
    eng = find_by_email(engineers, email)
    return eng.engineer_name if eng and eng.engineer_name else None


def ids_by_name(engineers: Iterable[DirectoryEntry]) -> dict:
    """Exact display name → directory id (first entry wins on duplicates)."""
    out = {}
    for eng in engineers:
        out.setdefault(eng.engineer_name, eng.id)
    return out
