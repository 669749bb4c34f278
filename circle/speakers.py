"""Presence Mode speaker rotation."""

from typing import Optional, Sequence

from circle.state import Roster


def build_presence_order(roster: Roster) -> tuple[str, ...]:
    """Alive player ids in ascending seat order. Fixed for the rest of the Day."""
    return tuple(p.id for p in sorted(roster.alive(), key=lambda p: p.seat_no))


def next_speaker(
    order: Sequence[str],
    current_index: int,
    roster: Roster,
) -> tuple[Optional[int], Optional[str]]:
    """
    Return (index, player_id) of the next alive speaker after current_index.
    Slots of players who died mid-Day are skipped, never reordered.
    Returns (None, None) when the order is exhausted.
    """
    index = max(0, current_index) + 1
    while index < len(order):
        if roster.is_alive(order[index]):
            return index, order[index]
        index += 1
    return None, None
