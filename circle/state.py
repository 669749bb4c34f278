"""Game state types for Night Protocol."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Iterator, Optional

from circle.rules import (
    EliminationType,
    NightActionType,
    Role,
    Status,
    VotingChatMode,
    Winner,
)


@dataclass(frozen=True)
class Session:
    """One Circle: settings, phase and Day speaker bookkeeping."""

    id: str
    session_code: str
    host_user_id: str
    created_at: datetime
    status: Status = Status.LOBBY
    round_no: int = 0
    min_players: int = 6
    max_players: int = 12
    presence_mode: bool = True
    axy_chat_bridge: bool = True
    voting_chat_mode: VotingChatMode = VotingChatMode.CLOSED
    current_speaker_player_id: Optional[str] = None
    speaker_order: tuple[str, ...] = ()
    speaker_index: int = 0
    speaker_turn_ends_at: Optional[datetime] = None
    phase_ends_at: Optional[datetime] = None
    winner: Optional[Winner] = None
    version: int = 0  # bumped by the store on every committed write

    @property
    def ended(self) -> bool:
        return self.status == Status.ENDED


@dataclass(frozen=True)
class Player:
    """A seat in the Circle. user_id is None for AI seats."""

    id: str
    session_id: str
    username: str
    seat_no: int
    joined_at: datetime
    user_id: Optional[str] = None
    is_ai: bool = False
    role: Optional[Role] = None
    is_alive: bool = True
    elimination_type: Optional[EliminationType] = None
    revealed_role: Optional[Role] = None
    eliminated_at: Optional[datetime] = None


@dataclass(frozen=True)
class NightAction:
    """One actor's choice for one action type in one round."""

    session_id: str
    round_no: int
    actor_player_id: str
    action_type: NightActionType
    target_player_id: str
    created_at: datetime


@dataclass(frozen=True)
class Vote:
    session_id: str
    round_no: int
    voter_player_id: str
    target_player_id: str
    created_at: datetime


class EventScope(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class EventPhase(str, Enum):
    """Phase label stamped on an event. END marks the closing announcement."""

    LOBBY = "LOBBY"
    NIGHT = "NIGHT"
    DAY = "DAY"
    VOTING = "VOTING"
    END = "END"


class EventKind(str, Enum):
    """Type of game event."""

    SYSTEM = "system"
    LOBBY = "lobby"
    ROLE = "role"
    ACK = "ack"
    ORACLE_TRUTH = "oracle_truth"
    TURN = "turn"
    REVEAL = "reveal"
    END = "end"


@dataclass(frozen=True)
class Event:
    """A single append-only log entry. Private events carry the only player allowed to see them."""

    session_id: str
    round_no: int
    phase: EventPhase
    kind: EventKind
    content: str
    scope: EventScope = EventScope.PUBLIC
    target_player_id: Optional[str] = None
    id: int = 0
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class DayMessage:
    """One chat line during Day (or open voting)."""

    session_id: str
    round_no: int
    sender_player_id: str
    username: str
    content: str
    id: int = 0
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class OracleResult:
    oracle_player_id: str
    target_player_id: str
    role: Role


@dataclass(frozen=True)
class NightOutcome:
    """Result of night resolution; applied to the roster by the engine."""

    victim_id: Optional[str] = None
    protected_id: Optional[str] = None
    shadow_target_id: Optional[str] = None
    oracle_results: tuple[OracleResult, ...] = ()


@dataclass(frozen=True)
class VoteOutcome:
    exiled_id: Optional[str] = None
    tie: bool = True
    tally: dict[str, int] = field(default_factory=dict)


class Roster:
    """Immutable snapshot of a session's seats keyed by player id, iterated in seat order."""

    def __init__(self, players: Iterable[Player]) -> None:
        ordered = sorted(players, key=lambda p: p.seat_no)
        self._by_id: dict[str, Player] = {p.id: p for p in ordered}

    def __iter__(self) -> Iterator[Player]:
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, player_id: object) -> bool:
        return player_id in self._by_id

    def get(self, player_id: Optional[str]) -> Optional[Player]:
        """Return player by id or None."""
        if player_id is None:
            return None
        return self._by_id.get(player_id)

    def alive(self) -> list[Player]:
        """Return alive players in seat order."""
        return [p for p in self._by_id.values() if p.is_alive]

    def alive_ids(self) -> set[str]:
        return {p.id for p in self._by_id.values() if p.is_alive}

    def alive_with_role(self, role: Role) -> list[Player]:
        """Return alive players with the given role, in seat order."""
        return [p for p in self._by_id.values() if p.is_alive and p.role == role]

    def is_alive(self, player_id: Optional[str]) -> bool:
        player = self.get(player_id)
        return player is not None and player.is_alive

    def name_of(self, player_id: Optional[str]) -> str:
        player = self.get(player_id)
        return player.username if player else "Unknown"

    def replace(self, player: Player) -> "Roster":
        """Return a new roster with one player swapped in."""
        players = dict(self._by_id)
        players[player.id] = player
        return Roster(players.values())
