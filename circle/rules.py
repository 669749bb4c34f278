"""Game rules and constants for Night Protocol."""

from enum import Enum


class Role(str, Enum):
    """Hidden roles dealt at game start."""

    SHADOW = "shadow"
    ORACLE = "oracle"
    GUARDIAN = "guardian"
    CITIZEN = "citizen"


class Status(str, Enum):
    """Session lifecycle status."""

    LOBBY = "LOBBY"
    NIGHT = "NIGHT"
    DAY = "DAY"
    VOTING = "VOTING"
    ENDED = "ENDED"


class Winner(str, Enum):
    """Winning faction."""

    CITIZENS = "CITIZENS"
    SHADOWS = "SHADOWS"


class NightActionType(str, Enum):
    """Night action kinds; each maps to exactly one role."""

    SHADOW_TARGET = "shadow_target"
    GUARDIAN_PROTECT = "guardian_protect"
    ORACLE_PEEK = "oracle_peek"


class EliminationType(str, Enum):
    NIGHT_FADE = "night_fade"
    EXILE = "exile"


class VotingChatMode(str, Enum):
    """Whether day chat stays open (briefly) during voting."""

    CLOSED = "closed"
    OPEN_SHORT = "open_short"


# Shadows (x2 or x3), oracle and guardian are fixed; the rest are citizens
MIN_PLAYERS = 6
MAX_PLAYERS = 12
LARGE_CIRCLE_THRESHOLD = 11
SHADOWS_SMALL_CIRCLE = 2
SHADOWS_LARGE_CIRCLE = 3

SPEAKER_SECONDS = 60
VOTE_SECONDS = 60
NIGHT_SECONDS = 90

MAX_MESSAGE_LENGTH = 400
MAX_AI_NAME_LENGTH = 28
DEFAULT_AI_NAME = "Echo"

SESSION_CODE_LENGTH = 6
SESSION_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

ROLE_ACTION: dict[Role, NightActionType] = {
    Role.SHADOW: NightActionType.SHADOW_TARGET,
    Role.GUARDIAN: NightActionType.GUARDIAN_PROTECT,
    Role.ORACLE: NightActionType.ORACLE_PEEK,
}

ROLE_LABEL: dict[Role, str] = {
    Role.SHADOW: "Shadow Entity",
    Role.ORACLE: "Oracle",
    Role.GUARDIAN: "Guardian",
    Role.CITIZEN: "Citizen",
}

ROLE_REVEAL_LINE: dict[Role, str] = {
    Role.SHADOW: "You are Shadow Entity. Survive through silence. Hunt through consensus.",
    Role.ORACLE: "You are Oracle. You may seek one truth each night.",
    Role.GUARDIAN: "You are Guardian. You may protect one presence each night.",
    Role.CITIZEN: "You are Citizen. Watch the pattern. Trust slowly.",
}

ACTION_ACK: dict[Role, str] = {
    Role.SHADOW: "Selection received.",
    Role.GUARDIAN: "Protection set.",
    Role.ORACLE: "Inquiry received.",
}


def action_type_for(role: Role | None) -> NightActionType | None:
    """Return the night action a role may take, or None for citizens / unassigned seats."""
    if role is None:
        return None
    return ROLE_ACTION.get(role)
