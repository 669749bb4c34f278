"""Decision rules for AI seats: night action, vote and Day line."""

import logging
import random
from dataclasses import dataclass
from typing import Optional

from circle.rules import NightActionType, Role
from circle.state import Player, Roster

from agents.lines import DAY_LINES, FALLBACK_LINE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NightDecision:
    """An AI seat's chosen night action."""

    action_type: NightActionType
    target_id: str


def choose_night_action(
    ai_player: Player,
    roster: Roster,
    rng: random.Random,
) -> Optional[NightDecision]:
    """
    Shadows pick a random living non-shadow, guardians any living player
    (self included), oracles any living player but themselves. Citizens and
    dead or unassigned seats return None.
    """
    if not ai_player.is_alive or ai_player.role is None:
        return None
    alive = roster.alive()

    if ai_player.role == Role.SHADOW:
        candidates = [p for p in alive if p.id != ai_player.id and p.role != Role.SHADOW]
        action_type = NightActionType.SHADOW_TARGET
    elif ai_player.role == Role.GUARDIAN:
        candidates = alive
        action_type = NightActionType.GUARDIAN_PROTECT
    elif ai_player.role == Role.ORACLE:
        candidates = [p for p in alive if p.id != ai_player.id]
        action_type = NightActionType.ORACLE_PEEK
    else:
        return None

    if not candidates:
        return None
    target = rng.choice(candidates)
    logger.debug("AI %s (%s) night target %s", ai_player.id, ai_player.role.value, target.id)
    return NightDecision(action_type=action_type, target_id=target.id)


def choose_vote_target(
    ai_player: Player,
    roster: Roster,
    rng: random.Random,
) -> Optional[str]:
    """Random living player other than self; shadows vote for non-shadows when they can."""
    if not ai_player.is_alive:
        return None
    others = [p for p in roster.alive() if p.id != ai_player.id]
    if not others:
        return None
    pool = others
    if ai_player.role == Role.SHADOW:
        non_shadows = [p for p in others if p.role != Role.SHADOW]
        pool = non_shadows or others
    target = rng.choice(pool)
    logger.debug("AI %s votes %s", ai_player.id, target.id)
    return target.id


def day_line(role: Optional[Role], rng: random.Random) -> str:
    """Pick one canned line for the role."""
    if role is None:
        return FALLBACK_LINE
    options = DAY_LINES.get(role)
    if not options:
        return FALLBACK_LINE
    return rng.choice(options)
