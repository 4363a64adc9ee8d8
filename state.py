# state.py
from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Set

from loguru import logger

from models import Gender, Profile

ChangeListener = Callable[[], None]


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


# ============================================================
#                        PROFILE STORE
# ============================================================

class ProfileStore:
    """Owns every Profile. Callers get the stored record itself, never a copy."""

    def __init__(self, on_change: Optional[ChangeListener] = None):
        self._profiles: Dict[int, Profile] = {}
        self._on_change = on_change

    def __contains__(self, user_id: int) -> bool:
        return user_id in self._profiles

    def __len__(self) -> int:
        return len(self._profiles)

    def __iter__(self) -> Iterator[int]:
        return iter(self._profiles)

    def items(self):
        return self._profiles.items()

    def ids(self) -> List[int]:
        return list(self._profiles)

    def get(self, user_id: int) -> Optional[Profile]:
        return self._profiles.get(user_id)

    def get_or_create(self, user_id: int) -> Profile:
        profile = self._profiles.get(user_id)
        if profile is None:
            profile = Profile()
            self._profiles[user_id] = profile
            self._changed()
        return profile

    def set_gender(self, user_id: int, gender: Gender) -> Profile:
        profile = self.get_or_create(user_id)
        profile.gender = Gender(gender)
        self._changed()
        return profile

    def set_interests(self, user_id: int, tokens: Iterable[str]) -> Profile:
        profile = self.get_or_create(user_id)
        profile.interests = normalize_interests(tokens)
        self._changed()
        return profile

    def put(self, user_id: int, profile: Profile) -> None:
        self._profiles[user_id] = profile

    def clear(self) -> None:
        self._profiles.clear()

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()


# ============================================================
#                   CHAT STATE (single aggregate)
# ============================================================

class ChatState:
    """
    Everything the bot knows: profiles, the waiting queue and the ban list.
    All of it sits behind one lock; hold `lock` for the whole of an event.
    """

    def __init__(self):
        self.lock = asyncio.Lock()
        self.profiles = ProfileStore(on_change=self.mark_changed)
        self.waiting: List[int] = []
        self.banned: Set[int] = set()
        self._listeners: List[ChangeListener] = []

    def add_listener(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def mark_changed(self) -> None:
        for listener in self._listeners:
            listener()

    def partner_of(self, user_id: int) -> Optional[int]:
        profile = self.profiles.get(user_id)
        return profile.partner_id if profile else None

    def is_banned(self, user_id: int) -> bool:
        return user_id in self.banned

    def stats(self) -> Dict[str, int]:
        paired = sum(1 for _, p in self.profiles.items() if p.partner_id is not None)
        return {
            "users": len(self.profiles),
            "waiting": len(self.waiting),
            "pairs": paired // 2,
            "banned": len(self.banned),
        }

    # ------------------ snapshot / restore ------------------

    def snapshot(self) -> Dict[str, Any]:
        users = {}
        for uid, p in self.profiles.items():
            users[str(uid)] = {
                "gender": p.gender.value,
                "interests": sorted(p.interests),
                "partnerId": p.partner_id,
                "premiumGirlsUntil": p.premium_girls_until,
            }
        return {
            "users": users,
            "waiting": list(self.waiting),
            "banned": sorted(self.banned),
        }

    def restore(self, data: Any) -> None:
        """
        Replace the in-memory state with a snapshot. Bad fields fall back to
        their defaults one by one; the rest of the record is still loaded.
        """
        if not isinstance(data, dict):
            logger.warning("Snapshot is not an object, starting with empty state")
            data = {}

        self.profiles.clear()
        self.waiting = []
        self.banned = set()

        raw_users = data.get("users")
        if not isinstance(raw_users, dict):
            raw_users = {}
        for key, raw in raw_users.items():
            uid = _as_int(key)
            if uid is None:
                logger.warning("Skipping user with non-numeric id {!r}", key)
                continue
            self.profiles.put(uid, _profile_from_raw(uid, raw))

        raw_banned = data.get("banned")
        for item in raw_banned if isinstance(raw_banned, list) else []:
            uid = _as_int(item)
            if uid is not None:
                self.banned.add(uid)

        self._repair_pairs()

        raw_waiting = data.get("waiting")
        for item in raw_waiting if isinstance(raw_waiting, list) else []:
            uid = _as_int(item)
            if uid is None or uid in self.banned or uid in self.waiting:
                continue
            if self.profiles.get_or_create(uid).partner_id is not None:
                continue
            self.waiting.append(uid)

    def _repair_pairs(self) -> None:
        for uid, profile in self.profiles.items():
            pid = profile.partner_id
            if pid is None:
                continue
            other = self.profiles.get(pid)
            if pid == uid or other is None or other.partner_id != uid:
                logger.warning("Dropping one-sided pairing {} -> {}", uid, pid)
                profile.partner_id = None


def normalize_interests(tokens: Iterable[Any]) -> Set[str]:
    return {t.strip().lower() for t in tokens if isinstance(t, str) and t.strip()}


def _profile_from_raw(uid: int, raw: Any) -> Profile:
    profile = Profile()
    if not isinstance(raw, dict):
        logger.warning("User {} has a malformed record, using defaults", uid)
        return profile

    try:
        profile.gender = Gender(raw.get("gender"))
    except ValueError:
        pass

    interests = raw.get("interests")
    if isinstance(interests, (list, tuple)):
        profile.interests = normalize_interests(interests)

    profile.partner_id = _as_int(raw.get("partnerId"))

    until = _as_int(raw.get("premiumGirlsUntil"))
    if until is not None and until > 0:
        profile.premium_girls_until = until
    return profile


__all__ = [
    "ProfileStore",
    "ChatState",
    "normalize_interests",
]
