"""Tests for bans and admin force-pairing."""

import pytest

from conftest import T0, add_user, assert_invariants
from errors import AdminActionError
from matching import MatchStatus


def test_ban_removes_from_queue(state, engine, moderation):
    engine.request_match(1, T0)
    assert moderation.ban(1, T0) is None
    assert state.waiting == []
    assert moderation.is_banned(1)
    # later scans never pick the banned user
    assert engine.request_match(2, T0).status == MatchStatus.QUEUED
    assert_invariants(state)


def test_ban_paired_user_returns_abandoned_partner(state, engine, moderation):
    engine.pair(1, 2, T0)
    assert moderation.ban(1, T0) == 2
    assert state.partner_of(2) is None
    assert state.partner_of(1) is None
    assert_invariants(state)


def test_banned_user_cannot_match(engine, moderation):
    moderation.ban(1, T0)
    assert engine.request_match(1, T0).status == MatchStatus.BANNED


def test_unban_is_idempotent(state, moderation):
    moderation.ban(1, T0)
    assert moderation.unban(1)
    assert not moderation.unban(1)
    assert 1 not in state.banned


def test_unban_does_not_restore_queue(state, engine, moderation):
    engine.request_match(1, T0)
    moderation.ban(1, T0)
    moderation.unban(1)
    assert state.waiting == []


def test_force_pair_displaces_existing_partners(state, engine, moderation):
    for uid in (1, 2, 3, 4, 5):
        add_user(state, uid)
    engine.pair(1, 3, T0)
    engine.pair(2, 4, T0)
    engine.enqueue(5)

    result = moderation.force_pair(1, 2, T0)
    assert sorted(result.displaced) == [3, 4]
    assert state.partner_of(1) == 2
    assert state.partner_of(3) is None
    assert state.partner_of(4) is None
    assert_invariants(state)


def test_force_pair_takes_users_out_of_queue(state, engine, moderation):
    add_user(state, 1)
    add_user(state, 2)
    engine.enqueue(1)
    engine.enqueue(2)
    result = moderation.force_pair(1, 2, T0)
    assert result.displaced == ()
    assert state.waiting == []
    assert_invariants(state)


def test_force_pair_existing_pair_does_not_report_each_other(state, engine, moderation):
    add_user(state, 1)
    add_user(state, 2)
    engine.pair(1, 2, T0)
    assert moderation.force_pair(2, 1, T0).displaced == ()


def test_force_pair_bypasses_ban(state, moderation):
    add_user(state, 1)
    add_user(state, 2)
    moderation.ban(1, T0)
    moderation.force_pair(1, 2, T0)
    assert state.partner_of(1) == 2


def test_force_pair_rejects_self(state, moderation):
    add_user(state, 1)
    with pytest.raises(AdminActionError):
        moderation.force_pair(1, 1, T0)


def test_force_pair_rejects_unknown_without_mutating(state, engine, moderation):
    add_user(state, 1)
    add_user(state, 2)
    engine.pair(1, 2, T0)
    with pytest.raises(AdminActionError, match="99"):
        moderation.force_pair(1, 99, T0)
    assert state.partner_of(1) == 2
