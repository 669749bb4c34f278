"""Night, vote and win resolution: pure functions over a Roster snapshot."""

from collections import Counter
from typing import Optional, Sequence

from circle.rules import NightActionType, Role, Winner
from circle.state import (
    NightAction,
    NightOutcome,
    OracleResult,
    Roster,
    Vote,
    VoteOutcome,
)


def majority_choice(targets: Sequence[str]) -> Optional[str]:
    """
    Most frequent target. On a tie the target whose first occurrence came
    earliest wins, so the first signal among the tied group decides.
    """
    if not targets:
        return None
    counts = Counter(targets)
    first_index: dict[str, int] = {}
    for index, target in enumerate(targets):
        first_index.setdefault(target, index)
    return min(counts, key=lambda t: (-counts[t], first_index[t]))


def latest_action(
    actions: Sequence[NightAction],
    actor_player_id: str,
    action_type: NightActionType,
) -> Optional[NightAction]:
    """Return the last action in submission order for this actor and type."""
    matches = [
        a for a in actions
        if a.actor_player_id == actor_player_id and a.action_type == action_type
    ]
    return matches[-1] if matches else None


def resolve_night(roster: Roster, actions: Sequence[NightAction]) -> NightOutcome:
    """
    Resolve one night. actions must be in submission order.

    Shadows pick by majority (first-signal tie-break), the first alive guardian
    with a live target shields it, and each alive oracle learns one true role.
    Does not mutate anything; the engine applies the outcome.
    """
    alive_ids = roster.alive_ids()
    shadow_ids = {p.id for p in roster.alive_with_role(Role.SHADOW)}

    shadow_targets = [
        a.target_player_id
        for a in actions
        if a.action_type == NightActionType.SHADOW_TARGET
        and a.actor_player_id in shadow_ids
        and a.target_player_id in alive_ids
    ]
    shadow_target_id = majority_choice(shadow_targets)

    protected_id: Optional[str] = None
    for guardian in roster.alive_with_role(Role.GUARDIAN):
        action = latest_action(actions, guardian.id, NightActionType.GUARDIAN_PROTECT)
        if action and action.target_player_id in alive_ids:
            protected_id = action.target_player_id
            break

    victim_id: Optional[str] = None
    if shadow_target_id and shadow_target_id != protected_id:
        victim_id = shadow_target_id

    oracle_results: list[OracleResult] = []
    for oracle in roster.alive_with_role(Role.ORACLE):
        action = latest_action(actions, oracle.id, NightActionType.ORACLE_PEEK)
        if not action or action.target_player_id not in alive_ids:
            continue
        target = roster.get(action.target_player_id)
        if target is None or target.role is None:
            continue
        oracle_results.append(
            OracleResult(
                oracle_player_id=oracle.id,
                target_player_id=target.id,
                role=target.role,
            )
        )

    return NightOutcome(
        victim_id=victim_id,
        protected_id=protected_id,
        shadow_target_id=shadow_target_id,
        oracle_results=tuple(oracle_results),
    )


def resolve_vote(roster: Roster, votes: Sequence[Vote]) -> VoteOutcome:
    """
    Tally votes between living players. A unique top count exiles that target;
    any tie at the top, including no votes at all, exiles no one.
    """
    alive_ids = roster.alive_ids()
    valid = [
        v for v in votes
        if v.voter_player_id in alive_ids and v.target_player_id in alive_ids
    ]
    tally = dict(Counter(v.target_player_id for v in valid))
    if not tally:
        return VoteOutcome(exiled_id=None, tie=True, tally=tally)

    ranked = sorted(tally.items(), key=lambda item: item[1], reverse=True)
    top_id, top_count = ranked[0]
    tied = [tid for tid, count in ranked if count == top_count]
    if len(tied) > 1:
        return VoteOutcome(exiled_id=None, tie=True, tally=tally)
    return VoteOutcome(exiled_id=top_id, tie=False, tally=tally)


def compute_winner(roster: Roster) -> Optional[Winner]:
    """Return CITIZENS or SHADOWS, or None while the game continues."""
    alive = roster.alive()
    shadows_alive = sum(1 for p in alive if p.role == Role.SHADOW)
    citizens_alive = len(alive) - shadows_alive
    if shadows_alive <= 0:
        return Winner.CITIZENS
    if shadows_alive >= citizens_alive:
        return Winner.SHADOWS
    return None
