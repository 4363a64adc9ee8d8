# chat.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import premium
from matching import MatchingEngine, MatchOutcome, MatchStatus
from models import Gender, now_ms
from moderation import ForcePairResult, ModerationService
from relay import Deliver, RelayOutcome, RelayService, RelayStatus
from state import ChatState

Clock = Callable[[], int]


@dataclass(frozen=True)
class NextResult:
    former_partner: Optional[int]
    match: MatchOutcome


@dataclass(frozen=True)
class StopResult:
    former_partner: Optional[int]
    was_queued: bool


@dataclass(frozen=True)
class TextResult:
    relay: Optional[RelayOutcome]
    rematch: Optional[MatchOutcome] = None
    banned: bool = False


@dataclass(frozen=True)
class ProfileView:
    gender: Gender
    interests: Tuple[str, ...]
    premium_hours: Optional[int]  # None when the filter is not active


@dataclass(frozen=True)
class UserRow:
    user_id: int
    gender: Gender
    interests: Tuple[str, ...]
    partner_id: Optional[int]


class AnonChat:
    """
    One method per inbound event. Each runs as a single transaction under
    `state.lock` and returns what happened; sending notices is the caller's
    job once the lock is released.
    """

    def __init__(self, state: ChatState, deliver: Deliver, premium_hours: int = 14,
                 clock: Clock = now_ms):
        self.state = state
        self.engine = MatchingEngine(state)
        self.moderation = ModerationService(state, self.engine)
        self.relay = RelayService(state, self.engine, deliver)
        self.premium_hours = premium_hours
        self.clock = clock

    # ============================================================
    #                        USER EVENTS
    # ============================================================

    async def start(self, user_id: int) -> MatchOutcome:
        async with self.state.lock:
            return self.engine.request_match(user_id, self.clock())

    async def next(self, user_id: int) -> NextResult:
        async with self.state.lock:
            if self.state.is_banned(user_id):
                return NextResult(None, MatchOutcome(MatchStatus.BANNED))
            now = self.clock()
            former = self.engine.unpair(user_id, now)
            return NextResult(former, self.engine.request_match(user_id, now))

    async def stop(self, user_id: int) -> StopResult:
        async with self.state.lock:
            former = self.engine.unpair(user_id, self.clock())
            was_queued = self.engine.remove_from_queue(user_id)
            return StopResult(former, was_queued)

    async def set_gender(self, user_id: int, gender: Gender) -> None:
        async with self.state.lock:
            self.state.profiles.set_gender(user_id, gender)

    async def set_interests(self, user_id: int, tokens: Iterable[str]) -> Tuple[str, ...]:
        async with self.state.lock:
            profile = self.state.profiles.set_interests(user_id, tokens)
            return tuple(sorted(profile.interests))

    async def view_profile(self, user_id: int) -> ProfileView:
        async with self.state.lock:
            profile = self.state.profiles.get_or_create(user_id)
            now = self.clock()
            hours = premium.remaining_hours(profile, now) if premium.is_active(profile, now) else None
            return ProfileView(profile.gender, tuple(sorted(profile.interests)), hours)

    async def premium_status(self, user_id: int) -> Optional[int]:
        return (await self.view_profile(user_id)).premium_hours

    async def premium_confirmed(self, user_id: int) -> int:
        async with self.state.lock:
            profile = self.state.profiles.get_or_create(user_id)
            until = premium.grant(profile, self.clock(), self.premium_hours)
            self.state.mark_changed()
            return until

    async def send_text(self, user_id: int, text: str) -> TextResult:
        async with self.state.lock:
            if self.state.is_banned(user_id):
                return TextResult(relay=None, banned=True)

        outcome = await self.relay.relay(user_id, text, self.clock())
        if outcome.status != RelayStatus.DELIVERY_FAILED:
            return TextResult(outcome)

        async with self.state.lock:
            rematch = self.engine.request_match(user_id, self.clock())
        return TextResult(outcome, rematch)

    # ============================================================
    #                        ADMIN EVENTS
    # ============================================================

    async def stats(self) -> Dict[str, int]:
        async with self.state.lock:
            return self.state.stats()

    async def waiting_list(self, limit: int = 200) -> List[int]:
        async with self.state.lock:
            return self.state.waiting[:limit]

    async def user_list(self, limit: int = 50) -> List[UserRow]:
        rows = []
        async with self.state.lock:
            for uid, p in self.state.profiles.items():
                if len(rows) >= limit:
                    break
                rows.append(UserRow(uid, p.gender, tuple(sorted(p.interests))[:5], p.partner_id))
        return rows

    async def ban(self, user_id: int) -> Optional[int]:
        async with self.state.lock:
            return self.moderation.ban(user_id, self.clock())

    async def unban(self, user_id: int) -> bool:
        async with self.state.lock:
            return self.moderation.unban(user_id)

    async def force_pair(self, a: int, b: int) -> ForcePairResult:
        async with self.state.lock:
            return self.moderation.force_pair(a, b, self.clock())

    async def recipients(self) -> List[int]:
        async with self.state.lock:
            return self.state.profiles.ids()

    async def snapshot(self) -> Dict[str, Any]:
        async with self.state.lock:
            return self.state.snapshot()


__all__ = [
    "AnonChat",
    "NextResult",
    "StopResult",
    "TextResult",
    "ProfileView",
    "UserRow",
    "MatchStatus",
]
