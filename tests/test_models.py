"""Tests for profile parsing helpers."""

import pytest

from models import Gender, Profile, gender_label, parse_gender, parse_interests


@pytest.mark.parametrize(
    "text,expected",
    [
        ("girl", Gender.GIRL),
        (" F ", Gender.GIRL),
        ("male", Gender.BOY),
        ("b", Gender.BOY),
        ("any", Gender.OTHER),
        ("robot", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_gender(text, expected):
    assert parse_gender(text) == expected


def test_parse_interests_normalizes_and_dedups():
    assert parse_interests("Roblox, anime\nGaming  roblox,,") == ["roblox", "anime", "gaming"]


def test_parse_interests_empty():
    assert parse_interests("  , ,\n") == []
    assert parse_interests(None) == []


def test_gender_label():
    assert gender_label(Gender.GIRL) == "girl"
    assert gender_label(Gender.BOY) == "boy"
    assert gender_label(Gender.OTHER) == "person"
    assert gender_label(Gender.UNKNOWN) == "person"


def test_profile_defaults():
    p = Profile()
    assert p.gender == Gender.UNKNOWN
    assert p.interests == set()
    assert p.partner_id is None
    assert p.premium_girls_until == 0
