# relay.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from loguru import logger

from matching import MatchingEngine
from state import ChatState

Deliver = Callable[[int, str], Awaitable[bool]]


class RelayStatus(str, Enum):
    DELIVERED = "delivered"
    NO_PARTNER = "no_partner"
    DELIVERY_FAILED = "delivery_failed"


@dataclass(frozen=True)
class RelayOutcome:
    status: RelayStatus
    partner_id: Optional[int] = None


class RelayService:
    """
    Forwards text to the sender's partner. The partner is looked up under the
    state lock, the network send happens outside it.
    """

    def __init__(self, state: ChatState, engine: MatchingEngine, deliver: Deliver):
        self.state = state
        self.engine = engine
        self.deliver = deliver

    async def relay(self, sender_id: int, text: str, now: int) -> RelayOutcome:
        async with self.state.lock:
            partner_id = self.state.partner_of(sender_id)
        if partner_id is None:
            return RelayOutcome(RelayStatus.NO_PARTNER)

        if await self.deliver(partner_id, text):
            return RelayOutcome(RelayStatus.DELIVERED, partner_id)

        logger.warning("Could not deliver message from {} to {}, dropping the pair", sender_id, partner_id)
        async with self.state.lock:
            # the pair may have changed while we were sending
            if self.state.partner_of(sender_id) == partner_id:
                self.engine.unpair(sender_id, now)
        return RelayOutcome(RelayStatus.DELIVERY_FAILED, partner_id)


__all__ = [
    "RelayStatus",
    "RelayOutcome",
    "RelayService",
]
