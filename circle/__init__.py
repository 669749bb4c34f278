"""Game core for Night Protocol. SessionEngine lives in circle.engine."""

from circle.errors import (
    AuthorizationError,
    CapacityError,
    ConflictError,
    GameError,
    NotFoundError,
    PhaseError,
    ValidationError,
)
from circle.resolution import compute_winner, resolve_night, resolve_vote
from circle.roles import assign_roles, build_role_deck
from circle.rules import Role, Status, Winner, NightActionType, VotingChatMode
from circle.speakers import build_presence_order, next_speaker
from circle.state import Session, Player, NightAction, Vote, Event, DayMessage, Roster
from circle.store import InMemorySessionStore, SessionStore

__all__ = [
    "compute_winner",
    "resolve_night",
    "resolve_vote",
    "assign_roles",
    "build_role_deck",
    "build_presence_order",
    "next_speaker",
    "Role",
    "Status",
    "Winner",
    "NightActionType",
    "VotingChatMode",
    "Session",
    "Player",
    "NightAction",
    "Vote",
    "Event",
    "DayMessage",
    "Roster",
    "InMemorySessionStore",
    "SessionStore",
    "GameError",
    "ValidationError",
    "PhaseError",
    "ConflictError",
    "AuthorizationError",
    "NotFoundError",
    "CapacityError",
]
