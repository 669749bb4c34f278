"""Viewer-scoped read model: what one seated player is allowed to see."""

from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from circle.rules import Role, Status
from circle.state import (
    DayMessage,
    Event,
    EventScope,
    NightAction,
    Player,
    Session,
    Vote,
)


@dataclass(frozen=True)
class PlayerView:
    """A seat as shown to one viewer. role is None unless visible to that viewer."""

    id: str
    username: str
    is_ai: bool
    seat_no: int
    is_alive: bool
    elimination_type: Optional[str]
    role: Optional[Role]


@dataclass(frozen=True)
class ViewerCounts:
    total_players: int
    alive_players: int
    votes_this_round: int
    actions_this_round: int


@dataclass(frozen=True)
class ViewerState:
    session: Session
    me: Player
    is_host: bool
    players: list[PlayerView]
    events: list[Event]
    day_messages: list[DayMessage]
    my_round_action: Optional[NightAction]
    my_round_vote: Optional[Vote]
    counts: ViewerCounts


@dataclass(frozen=True)
class LobbySummary:
    session: Session
    player_count: int
    joined: bool


@dataclass(frozen=True)
class LobbyListing:
    lobbies: list[LobbySummary] = field(default_factory=list)
    my_sessions: list[Session] = field(default_factory=list)


def is_visible(event: Event, viewer_id: str) -> bool:
    """Public events are visible to all; private ones only to their target."""
    if event.scope == EventScope.PUBLIC:
        return True
    return event.target_player_id == viewer_id


def visible_events(events: Iterable[Event], viewer_id: str) -> list[Event]:
    return [e for e in events if is_visible(e, viewer_id)]


def visible_role(player: Player, viewer: Player, status: Status) -> Optional[Role]:
    """Own role always; others once revealed; everyone's once the game has ended."""
    if status == Status.ENDED or player.id == viewer.id or player.revealed_role is not None:
        return player.revealed_role or player.role
    return None


def build_viewer_state(
    session: Session,
    players: Sequence[Player],
    viewer: Player,
    events: Sequence[Event],
    day_messages: Sequence[DayMessage],
    round_actions: Sequence[NightAction],
    round_votes: Sequence[Vote],
) -> ViewerState:
    """Assemble the read model for viewer. Nothing private to other seats leaks through."""
    alive_ids = {p.id for p in players if p.is_alive}
    my_action = next(
        (a for a in reversed(round_actions) if a.actor_player_id == viewer.id), None
    )
    my_vote = next((v for v in round_votes if v.voter_player_id == viewer.id), None)

    player_views = [
        PlayerView(
            id=p.id,
            username=p.username,
            is_ai=p.is_ai,
            seat_no=p.seat_no,
            is_alive=p.is_alive,
            elimination_type=p.elimination_type.value if p.elimination_type else None,
            role=visible_role(p, viewer, session.status),
        )
        for p in players
    ]
    counts = ViewerCounts(
        total_players=len(players),
        alive_players=len(alive_ids),
        votes_this_round=sum(1 for v in round_votes if v.voter_player_id in alive_ids),
        actions_this_round=len(round_actions),
    )
    return ViewerState(
        session=session,
        me=viewer,
        is_host=session.host_user_id == viewer.user_id,
        players=player_views,
        events=visible_events(events, viewer.id),
        day_messages=list(day_messages),
        my_round_action=my_action,
        my_round_vote=my_vote,
        counts=counts,
    )
