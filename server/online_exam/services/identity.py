"""
Identity Resolver.

Maps the session principal onto the student directory.
"""
import logging
import re
from typing import Iterable, Optional

from online_exam.errors import IdentityNotFound
from online_exam.schemas import DirectoryEntry, StudentRecord

logger = logging.getLogger(__name__)

# Rows may carry decorated emails such as "std101@school.com (Student) - Approved"
_EMAIL_TOKEN = re.compile(r"^([^\s(]+)")


def normalize_email(value: Optional[str]) -> str:
    """Comparison key for an email: leading token, trimmed and lower-cased."""
    raw = (value or "").strip().lower()
    match = _EMAIL_TOKEN.match(raw)
    return match.group(1) if match else raw


def resolve_identity(principal: str, directory: Iterable[DirectoryEntry]) -> StudentRecord:
    """Return the StudentRecord whose email matches the principal (case-insensitive)."""
    key = normalize_email(principal)
    if not key:
        raise IdentityNotFound(principal)

    for entry in directory:
        if entry.email is None or entry.class_id is None:
            continue
        if normalize_email(entry.email) == key:
            logger.info("Resolved %s to student %s (class %s)", key, entry.id, entry.class_id)
            return StudentRecord(id=entry.id, email=entry.email, class_id=entry.class_id)

    raise IdentityNotFound(principal)
