"""AI seat decision rules."""

import dataclasses
import random
from datetime import datetime, timezone

from agents.lines import DAY_LINES, FALLBACK_LINE
from agents.policy import choose_night_action, choose_vote_target, day_line
from circle.rules import NightActionType, Role
from circle.state import Player, Roster

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _roster() -> Roster:
    roles = [Role.SHADOW, Role.SHADOW, Role.ORACLE, Role.GUARDIAN, Role.CITIZEN, Role.CITIZEN]
    return Roster(
        Player(
            id=f"p{i}", session_id="s1", username=f"P{i}", seat_no=i, joined_at=T0,
            is_ai=True, role=role,
        )
        for i, role in enumerate(roles, start=1)
    )


def test_shadow_never_targets_shadow_or_self():
    roster = _roster()
    shadow = roster.get("p1")
    for seed in range(50):
        decision = choose_night_action(shadow, roster, random.Random(seed))
        assert decision.action_type == NightActionType.SHADOW_TARGET
        assert decision.target_id not in ("p1", "p2")


def test_oracle_never_peeks_self():
    roster = _roster()
    oracle = roster.get("p3")
    for seed in range(50):
        decision = choose_night_action(oracle, roster, random.Random(seed))
        assert decision.action_type == NightActionType.ORACLE_PEEK
        assert decision.target_id != "p3"


def test_guardian_may_pick_self():
    roster = _roster()
    guardian = roster.get("p4")
    targets = {
        choose_night_action(guardian, roster, random.Random(seed)).target_id
        for seed in range(200)
    }
    assert "p4" in targets
    assert targets <= roster.alive_ids()


def test_citizen_and_dead_have_no_night_action():
    roster = _roster()
    assert choose_night_action(roster.get("p5"), roster, random.Random(1)) is None
    dead = dataclasses.replace(roster.get("p1"), is_alive=False)
    assert choose_night_action(dead, roster.replace(dead), random.Random(1)) is None


def test_night_targets_only_alive():
    roster = _roster()
    for pid in ("p3", "p4", "p5"):
        roster = roster.replace(dataclasses.replace(roster.get(pid), is_alive=False))
    decision = choose_night_action(roster.get("p1"), roster, random.Random(0))
    assert decision.target_id == "p6"


def test_shadow_with_no_candidates_returns_none():
    roster = Roster([
        Player(id="a", session_id="s1", username="A", seat_no=1, joined_at=T0, role=Role.SHADOW),
        Player(id="b", session_id="s1", username="B", seat_no=2, joined_at=T0, role=Role.SHADOW),
    ])
    assert choose_night_action(roster.get("a"), roster, random.Random(0)) is None


def test_vote_never_self():
    roster = _roster()
    for seed in range(50):
        assert choose_vote_target(roster.get("p5"), roster, random.Random(seed)) != "p5"


def test_shadow_votes_for_non_shadow():
    roster = _roster()
    for seed in range(50):
        assert choose_vote_target(roster.get("p1"), roster, random.Random(seed)) not in ("p1", "p2")


def test_vote_none_when_alone():
    solo = Roster([Player(id="a", session_id="s1", username="A", seat_no=1, joined_at=T0, role=Role.CITIZEN)])
    assert choose_vote_target(solo.get("a"), solo, random.Random(0)) is None


def test_day_line_comes_from_role_pool():
    rng = random.Random(5)
    for role in Role:
        assert day_line(role, rng) in DAY_LINES[role]
    assert day_line(None, rng) == FALLBACK_LINE
