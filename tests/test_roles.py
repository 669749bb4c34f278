"""Role deck and dealing."""

import random
from collections import Counter
from datetime import datetime, timezone

import pytest

from circle.roles import assign_roles, build_role_deck, shadow_count
from circle.rules import EliminationType, Role
from circle.state import Player

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _seats(n: int) -> list[Player]:
    return [
        Player(id=f"p{i}", session_id="s1", username=f"P{i}", seat_no=i, joined_at=T0)
        for i in range(1, n + 1)
    ]


@pytest.mark.parametrize("count", range(6, 13))
def test_deck_composition(count):
    deck = build_role_deck(count, random.Random(count))
    tally = Counter(deck)
    shadows = 3 if count >= 11 else 2
    assert len(deck) == count
    assert tally[Role.ORACLE] == 1
    assert tally[Role.GUARDIAN] == 1
    assert tally[Role.SHADOW] == shadows
    assert tally[Role.CITIZEN] == count - 2 - shadows


def test_shadow_count_threshold():
    assert shadow_count(10) == 2
    assert shadow_count(11) == 3


def test_deck_shuffle_is_seeded():
    a = build_role_deck(8, random.Random(3))
    b = build_role_deck(8, random.Random(3))
    assert a == b


def test_assign_roles_resets_elimination():
    players = _seats(6)
    players[2] = Player(
        id="p3", session_id="s1", username="P3", seat_no=3, joined_at=T0,
        is_alive=False, elimination_type=EliminationType.EXILE, revealed_role=Role.SHADOW,
    )
    dealt = assign_roles(list(reversed(players)), random.Random(1))
    assert [p.seat_no for p in dealt] == [1, 2, 3, 4, 5, 6]
    assert all(p.role is not None for p in dealt)
    assert all(p.is_alive and p.elimination_type is None and p.revealed_role is None for p in dealt)
