# models.py
from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Set


class Gender(str, Enum):
    UNKNOWN = "unknown"
    GIRL = "girl"
    BOY = "boy"
    OTHER = "other"


GENDER_ALIASES = {
    "girl": Gender.GIRL, "g": Gender.GIRL, "female": Gender.GIRL, "f": Gender.GIRL,
    "boy": Gender.BOY, "b": Gender.BOY, "male": Gender.BOY, "m": Gender.BOY,
    "other": Gender.OTHER, "o": Gender.OTHER, "any": Gender.OTHER,
}

_INTEREST_SPLIT_RE = re.compile(r"[,\s]+")


@dataclass
class Profile:
    gender: Gender = Gender.UNKNOWN
    interests: Set[str] = field(default_factory=set)
    partner_id: Optional[int] = None
    premium_girls_until: int = 0  # ms since epoch, 0 = never bought


def now_ms() -> int:
    return int(time.time() * 1000)


def parse_gender(text: Optional[str]) -> Optional[Gender]:
    return GENDER_ALIASES.get((text or "").strip().lower())


def parse_interests(text: Optional[str]) -> List[str]:
    """Lower-case tokens split on commas/whitespace, first occurrence wins."""
    seen = {}
    for token in _INTEREST_SPLIT_RE.split((text or "").lower()):
        token = token.strip()
        if token and token not in seen:
            seen[token] = None
    return list(seen)


def gender_label(gender: Gender) -> str:
    if gender in (Gender.GIRL, Gender.BOY):
        return gender.value
    return "person"


__all__ = [
    "Gender",
    "Profile",
    "now_ms",
    "parse_gender",
    "parse_interests",
    "gender_label",
]
