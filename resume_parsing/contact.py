"""Contact detail extraction from resume text."""
from __future__ import annotations

import re
from typing import Optional

from pydantic import BaseModel

from interview_session.errors import CandidateValidationError

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-z]{2,}")
PHONE_PATTERN = re.compile(r"(\+?\d{1,3}[\s-]?)?\(?\d{2,4}\)?[\s.-]?\d{3,5}[\s.-]?\d{4}")
NAME_PATTERN = re.compile(r"^[A-Z][a-z]+(?:\s[A-Z][a-z]+){1,2}", re.MULTILINE)

_VALID_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ContactDetails(BaseModel):  # Fields prefilled into onboarding
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


def _first(pattern: re.Pattern[str], text: str) -> Optional[str]:
    match = pattern.search(text)
    return match.group(0).strip() if match else None


def extract_contact_details(text: str) -> ContactDetails:
    """Pick the first name, e-mail and phone number found in ``text``."""

    return ContactDetails(
        name=_first(NAME_PATTERN, text),
        email=_first(EMAIL_PATTERN, text),
        phone=_first(PHONE_PATTERN, text),
    )


def validate_candidate_info(name: str, email: str, phone: Optional[str] = None) -> ContactDetails:
    """Return the trimmed fields or raise when a required one is missing.

    Raises:
        CandidateValidationError: If name or email is blank or email is malformed.
    """

    name = (name or "").strip()
    email = (email or "").strip()
    if not name or not email:
        raise CandidateValidationError("Please fill in all required fields.")
    if not _VALID_EMAIL.match(email):
        raise CandidateValidationError("Please enter a valid email address.")
    return ContactDetails(name=name, email=email, phone=(phone or "").strip() or None)
