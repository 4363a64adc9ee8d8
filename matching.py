# matching.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional, Tuple

from loguru import logger

import premium
from models import Gender
from state import ChatState


class MatchStatus(str, Enum):
    BANNED = "banned"
    ALREADY_PAIRED = "already_paired"
    QUEUED = "queued"                      # queue was empty
    NO_SUITABLE_MATCH = "no_suitable"      # queue had people, none eligible
    PAIRED = "paired"


@dataclass(frozen=True)
class Pairing:
    """What both sides need to be told about a new pair; built under the lock."""
    a: int
    b: int
    a_gender: Gender
    b_gender: Gender
    a_interests: FrozenSet[str]
    b_interests: FrozenSet[str]
    shared: Tuple[str, ...]


@dataclass(frozen=True)
class MatchOutcome:
    status: MatchStatus
    pairing: Optional[Pairing] = None

    @property
    def partner_id(self) -> Optional[int]:
        return self.pairing.b if self.pairing else None

    @property
    def queued(self) -> bool:
        return self.status in (MatchStatus.QUEUED, MatchStatus.NO_SUITABLE_MATCH)


class MatchingEngine:
    """
    Greedy matcher over the waiting queue. Every method here is plain
    computation on ChatState; callers must already hold `state.lock`.
    """

    def __init__(self, state: ChatState):
        self.state = state

    # ------------------ queue ------------------

    def enqueue(self, user_id: int) -> None:
        if user_id not in self.state.waiting:
            self.state.waiting.append(user_id)
            self.state.mark_changed()

    def remove_from_queue(self, user_id: int) -> bool:
        if user_id not in self.state.waiting:
            return False
        self.state.waiting = [x for x in self.state.waiting if x != user_id]
        self.state.mark_changed()
        return True

    def position(self, user_id: int) -> Optional[int]:
        try:
            return self.state.waiting.index(user_id) + 1
        except ValueError:
            return None

    # ------------------ matching ------------------

    def request_match(self, user_id: int, now: int) -> MatchOutcome:
        if self.state.is_banned(user_id):
            return MatchOutcome(MatchStatus.BANNED)

        me = self.state.profiles.get_or_create(user_id)
        if me.partner_id is not None:
            return MatchOutcome(MatchStatus.ALREADY_PAIRED)

        self.remove_from_queue(user_id)

        if not self.state.waiting:
            self.enqueue(user_id)
            return MatchOutcome(MatchStatus.QUEUED)

        best = self._best_candidate(user_id, now)
        if best is None:
            self.enqueue(user_id)
            return MatchOutcome(MatchStatus.NO_SUITABLE_MATCH)

        self.remove_from_queue(best)
        return MatchOutcome(MatchStatus.PAIRED, self.pair(user_id, best, now))

    def _best_candidate(self, user_id: int, now: int) -> Optional[int]:
        me = self.state.profiles.get_or_create(user_id)
        best_id: Optional[int] = None
        best_score = -1
        for other_id in list(self.state.waiting):
            if other_id == user_id or self.state.is_banned(other_id):
                continue
            other = self.state.profiles.get_or_create(other_id)
            if other.partner_id is not None:
                continue
            if not premium.can_match(me, other, now):
                continue
            score = len(me.interests & other.interests)
            # strictly greater: ties keep the earliest queued
            if score > best_score:
                best_id, best_score = other_id, score
        return best_id

    # ------------------ pairing ------------------

    def pair(self, a: int, b: int, now: int) -> Pairing:
        pa = self.state.profiles.get_or_create(a)
        pb = self.state.profiles.get_or_create(b)
        pa.partner_id = b
        pb.partner_id = a
        self.state.mark_changed()
        logger.debug("Paired {} <-> {}", a, b)
        return Pairing(
            a=a,
            b=b,
            a_gender=pa.gender,
            b_gender=pb.gender,
            a_interests=frozenset(pa.interests),
            b_interests=frozenset(pb.interests),
            shared=tuple(sorted(pa.interests & pb.interests)),
        )

    def unpair(self, user_id: int, now: int) -> Optional[int]:
        profile = self.state.profiles.get(user_id)
        if profile is None or profile.partner_id is None:
            return None
        partner_id = profile.partner_id
        profile.partner_id = None
        partner = self.state.profiles.get(partner_id)
        if partner is not None and partner.partner_id == user_id:
            partner.partner_id = None
        self.state.mark_changed()
        logger.debug("Unpaired {} from {}", user_id, partner_id)
        return partner_id


__all__ = [
    "MatchStatus",
    "MatchOutcome",
    "Pairing",
    "MatchingEngine",
]
