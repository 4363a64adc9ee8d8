# premium.py
from __future__ import annotations

from math import ceil

from models import Gender, Profile

HOUR_MS = 60 * 60 * 1000


def is_active(profile: Profile, now: int) -> bool:
    return profile.premium_girls_until > now


def grant(profile: Profile, now: int, hours: int) -> int:
    # overwrite, not extend: buying twice does not stack
    profile.premium_girls_until = now + hours * HOUR_MS
    return profile.premium_girls_until


def remaining_hours(profile: Profile, now: int) -> int:
    return ceil((profile.premium_girls_until - now) / HOUR_MS)


def can_match(requester: Profile, candidate: Profile, now: int) -> bool:
    """Only the requester's filter is checked; the candidate's premium does not matter."""
    if is_active(requester, now) and candidate.gender != Gender.GIRL:
        return False
    return True


__all__ = [
    "HOUR_MS",
    "is_active",
    "grant",
    "remaining_hours",
    "can_match",
]
