"""Tests for the greedy matching engine."""

import premium
from conftest import T0, add_user, assert_invariants
from matching import MatchStatus
from models import Gender


class TestRequestMatch:
    def test_empty_queue_enqueues(self, state, engine):
        outcome = engine.request_match(1, T0)
        assert outcome.status == MatchStatus.QUEUED
        assert outcome.queued
        assert state.waiting == [1]
        assert_invariants(state)

    def test_requeue_does_not_duplicate(self, state, engine):
        engine.request_match(1, T0)
        outcome = engine.request_match(1, T0)
        # the requester is removed first, so the queue is empty again
        assert outcome.status == MatchStatus.QUEUED
        assert state.waiting == [1]

    def test_pairs_with_waiting_user(self, state, engine):
        engine.request_match(1, T0)
        outcome = engine.request_match(2, T0)
        assert outcome.status == MatchStatus.PAIRED
        assert outcome.partner_id == 1
        assert state.partner_of(1) == 2
        assert state.partner_of(2) == 1
        assert state.waiting == []
        assert_invariants(state)

    def test_highest_shared_interest_score_wins(self, state, engine):
        add_user(state, 10, interests=["x", "y"])  # A
        add_user(state, 11, interests=["x"])       # B
        state.waiting.extend([11, 10])
        add_user(state, 12, interests=["x", "y", "z"])  # C

        outcome = engine.request_match(12, T0)
        assert outcome.status == MatchStatus.PAIRED
        assert outcome.partner_id == 10
        assert outcome.pairing.shared == ("x", "y")
        assert state.waiting == [11]
        assert_invariants(state)

    def test_ties_go_to_earliest_queued(self, state, engine):
        add_user(state, 1, interests=["x"])
        add_user(state, 2, interests=["x"])
        state.waiting.extend([1, 2])
        add_user(state, 3, interests=["x"])
        assert engine.request_match(3, T0).partner_id == 1

    def test_zero_score_still_matches_first(self, state, engine):
        add_user(state, 1, interests=["a"])
        add_user(state, 2, interests=["b"])
        state.waiting.extend([1, 2])
        add_user(state, 3, interests=["c"])
        assert engine.request_match(3, T0).partner_id == 1

    def test_premium_requester_only_gets_girls(self, state, engine):
        add_user(state, 1, Gender.BOY, ["x", "y"])
        add_user(state, 2, Gender.GIRL)
        state.waiting.extend([1, 2])
        add_user(state, 3, Gender.BOY, ["x", "y"])
        premium.grant(state.profiles.get(3), T0, 14)

        outcome = engine.request_match(3, T0)
        assert outcome.partner_id == 2
        assert state.waiting == [1]

    def test_premium_without_girls_is_no_suitable_match(self, state, engine):
        add_user(state, 1, Gender.BOY)
        add_user(state, 2, Gender.OTHER)
        state.waiting.extend([1, 2])
        add_user(state, 3)
        premium.grant(state.profiles.get(3), T0, 14)

        outcome = engine.request_match(3, T0)
        assert outcome.status == MatchStatus.NO_SUITABLE_MATCH
        assert state.waiting == [1, 2, 3]
        assert_invariants(state)

    def test_candidate_premium_does_not_filter_requester(self, state, engine):
        add_user(state, 1, Gender.GIRL)
        premium.grant(state.profiles.get(1), T0, 14)
        state.waiting.append(1)
        add_user(state, 2, Gender.BOY)
        assert engine.request_match(2, T0).partner_id == 1

    def test_banned_requester_rejected(self, state, engine):
        state.banned.add(1)
        outcome = engine.request_match(1, T0)
        assert outcome.status == MatchStatus.BANNED
        assert state.waiting == []

    def test_already_paired_rejected(self, state, engine):
        engine.request_match(1, T0)
        engine.request_match(2, T0)
        outcome = engine.request_match(1, T0)
        assert outcome.status == MatchStatus.ALREADY_PAIRED
        assert state.partner_of(1) == 2

    def test_banned_candidate_skipped_during_scan(self, state, engine):
        add_user(state, 1, interests=["x"])
        add_user(state, 2)
        state.waiting.extend([1, 2])
        state.banned.add(1)  # banned without being dequeued
        add_user(state, 3, interests=["x"])

        assert engine.request_match(3, T0).partner_id == 2

    def test_only_banned_waiting_means_no_suitable_match(self, state, engine):
        state.waiting.append(1)
        state.banned.add(1)
        assert engine.request_match(2, T0).status == MatchStatus.NO_SUITABLE_MATCH


class TestPairing:
    def test_unpair_clears_both_sides(self, state, engine):
        engine.pair(1, 2, T0)
        assert engine.unpair(1, T0) == 2
        assert state.partner_of(1) is None
        assert state.partner_of(2) is None
        assert state.waiting == []  # nobody is re-queued
        assert_invariants(state)

    def test_unpair_without_partner_is_noop(self, state, engine):
        assert engine.unpair(1, T0) is None
        state.profiles.get_or_create(1)
        assert engine.unpair(1, T0) is None

    def test_pairing_carries_notice_details(self, state, engine):
        add_user(state, 1, Gender.GIRL, ["a", "b"])
        add_user(state, 2, Gender.BOY, ["b", "c"])
        p = engine.pair(1, 2, T0)
        assert (p.a, p.b) == (1, 2)
        assert p.a_gender == Gender.GIRL
        assert p.b_gender == Gender.BOY
        assert p.shared == ("b",)
        assert p.b_interests == frozenset({"b", "c"})

    def test_remove_from_queue_is_idempotent(self, state, engine):
        engine.enqueue(1)
        assert engine.remove_from_queue(1)
        assert not engine.remove_from_queue(1)
        assert state.waiting == []

    def test_position(self, engine):
        engine.enqueue(5)
        engine.enqueue(6)
        assert engine.position(6) == 2
        assert engine.position(7) is None

    def test_mutations_mark_state_changed(self, state, engine):
        calls = []
        state.add_listener(lambda: calls.append(1))
        engine.request_match(1, T0)
        engine.request_match(2, T0)
        engine.unpair(1, T0)
        assert calls


def test_invariants_hold_over_many_transitions(state, engine):
    for uid in range(1, 30):
        add_user(state, uid, Gender.GIRL if uid % 3 == 0 else Gender.BOY, [f"t{uid % 4}", f"t{uid % 5}"])
        if uid % 7 == 0:
            premium.grant(state.profiles.get(uid), T0, 14)
    for step in range(200):
        uid = (step * 13) % 29 + 1
        if step % 5 == 0:
            engine.unpair(uid, T0)
        else:
            engine.request_match(uid, T0)
        assert_invariants(state)
