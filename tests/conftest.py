"""Shared fixtures for the k-anony test suite."""

from typing import List, Set, Tuple

import pytest

from chat import AnonChat
from matching import MatchingEngine
from models import Gender
from moderation import ModerationService
from state import ChatState

T0 = 1_700_000_000_000  # ms


class FakeClock:
    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now


class FakeDeliver:
    """Stands in for Messenger.deliver: records sends, fails for `unreachable` ids."""

    def __init__(self):
        self.sent: List[Tuple[int, str]] = []
        self.unreachable: Set[int] = set()

    async def __call__(self, chat_id: int, text: str) -> bool:
        if chat_id in self.unreachable:
            return False
        self.sent.append((chat_id, text))
        return True


def assert_invariants(state: ChatState) -> None:
    """Pairing is symmetric, the queue is duplicate-free and disjoint from pairs and bans."""
    for uid, profile in state.profiles.items():
        if profile.partner_id is not None:
            partner = state.profiles.get(profile.partner_id)
            assert partner is not None
            assert partner.partner_id == uid
            assert profile.partner_id != uid
    assert len(state.waiting) == len(set(state.waiting))
    for uid in state.waiting:
        assert state.partner_of(uid) is None
        assert uid not in state.banned


def add_user(state: ChatState, uid: int, gender: Gender = Gender.UNKNOWN, interests=()) -> None:
    state.profiles.set_gender(uid, gender)
    state.profiles.set_interests(uid, interests)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def state() -> ChatState:
    return ChatState()


@pytest.fixture
def engine(state) -> MatchingEngine:
    return MatchingEngine(state)


@pytest.fixture
def moderation(state, engine) -> ModerationService:
    return ModerationService(state, engine)


@pytest.fixture
def deliver() -> FakeDeliver:
    return FakeDeliver()


@pytest.fixture
def chat(state, deliver, clock) -> AnonChat:
    return AnonChat(state, deliver, premium_hours=14, clock=clock)
