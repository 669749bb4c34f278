"""Role deck construction and dealing."""

import dataclasses
import random
from typing import Sequence

from circle.rules import (
    LARGE_CIRCLE_THRESHOLD,
    SHADOWS_LARGE_CIRCLE,
    SHADOWS_SMALL_CIRCLE,
    Role,
)
from circle.state import Player


def shadow_count(player_count: int) -> int:
    return SHADOWS_LARGE_CIRCLE if player_count >= LARGE_CIRCLE_THRESHOLD else SHADOWS_SMALL_CIRCLE


def build_role_deck(player_count: int, rng: random.Random) -> list[Role]:
    """
    Return a shuffled deck of exactly player_count roles: 1 oracle, 1 guardian,
    2 or 3 shadows, citizens for the rest. The caller enforces the player minimum.
    """
    deck = [Role.ORACLE, Role.GUARDIAN]
    deck.extend([Role.SHADOW] * shadow_count(player_count))
    while len(deck) < player_count:
        deck.append(Role.CITIZEN)
    deck = deck[:player_count]
    rng.shuffle(deck)
    return deck


def assign_roles(players: Sequence[Player], rng: random.Random) -> list[Player]:
    """Deal a fresh deck positionally in seat order and reset elimination fields."""
    seated = sorted(players, key=lambda p: p.seat_no)
    deck = build_role_deck(len(seated), rng)
    return [
        dataclasses.replace(
            player,
            role=role,
            is_alive=True,
            elimination_type=None,
            revealed_role=None,
            eliminated_at=None,
        )
        for player, role in zip(seated, deck)
    ]
