from datetime import date
from typing import Optional

from memberhub.core.errors import DomainError
from memberhub.db.models.attendee import AgeGroup

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50


def validate_family_member_name(name: Optional[str]) -> str:
    """Return the trimmed name or raise DomainError."""
    trimmed = (name or "").strip()
    if not trimmed:
        raise DomainError("Name is required")
    if len(trimmed) < NAME_MIN_LENGTH:
        raise DomainError(f"Name must be at least {NAME_MIN_LENGTH} characters long")
    if len(trimmed) > NAME_MAX_LENGTH:
        raise DomainError(f"Name must be at most {NAME_MAX_LENGTH} characters long")
    return trimmed


def calculate_age_group(birth_date: date, today: Optional[date] = None) -> AgeGroup:
    today = today or date.today()
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1

    if age <= 2:
        return AgeGroup.infant
    if age <= 5:
        return AgeGroup.toddler
    if age <= 10:
        return AgeGroup.child
    return AgeGroup.youth
