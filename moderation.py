# moderation.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from loguru import logger

from errors import AdminActionError
from matching import MatchingEngine, Pairing
from state import ChatState


@dataclass(frozen=True)
class ForcePairResult:
    pairing: Pairing
    displaced: Tuple[int, ...]  # former partners who must be told they were dropped


class ModerationService:
    """Ban list and admin overrides. Callers hold `state.lock`."""

    def __init__(self, state: ChatState, engine: MatchingEngine):
        self.state = state
        self.engine = engine

    def is_banned(self, user_id: int) -> bool:
        return self.state.is_banned(user_id)

    def ban(self, user_id: int, now: int) -> Optional[int]:
        """Ban and kick out of chat/queue. Returns the abandoned partner, if any."""
        self.state.banned.add(user_id)
        former = self.engine.unpair(user_id, now)
        self.engine.remove_from_queue(user_id)
        self.state.mark_changed()
        logger.info("Banned {} (partner dropped: {})", user_id, former)
        return former

    def unban(self, user_id: int) -> bool:
        if user_id not in self.state.banned:
            return False
        self.state.banned.discard(user_id)
        self.state.mark_changed()
        logger.info("Unbanned {}", user_id)
        return True

    def force_pair(self, a: int, b: int, now: int) -> ForcePairResult:
        if a == b:
            raise AdminActionError("Cannot pair a user with themselves.")
        missing = [x for x in (a, b) if x not in self.state.profiles]
        if missing:
            raise AdminActionError("Unknown user(s): " + ", ".join(str(x) for x in missing))

        displaced = []
        for uid in (a, b):
            former = self.engine.unpair(uid, now)
            if former is not None and former not in (a, b):
                displaced.append(former)
        self.engine.remove_from_queue(a)
        self.engine.remove_from_queue(b)
        pairing = self.engine.pair(a, b, now)
        logger.info("Force-paired {} <-> {} (displaced: {})", a, b, displaced)
        return ForcePairResult(pairing=pairing, displaced=tuple(displaced))


__all__ = [
    "ForcePairResult",
    "ModerationService",
]
