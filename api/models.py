"""Pydantic request/response models for the API."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from circle.engine import CommandResult
from circle.rules import MAX_PLAYERS, MIN_PLAYERS, Role, Status, VotingChatMode, Winner
from circle.state import DayMessage, Event, NightAction, Session, Vote
from circle.views import LobbyListing, ViewerState

# Request payload limits
MAX_SESSION_CODE_LENGTH = 16
MAX_AI_NAME_INPUT_LENGTH = 200
MAX_MESSAGE_INPUT_LENGTH = 4000


class CreateSessionRequest(BaseModel):
    """Body for POST /sessions."""

    max_players: int | None = Field(default=None, ge=MIN_PLAYERS, le=MAX_PLAYERS)
    presence_mode: bool = Field(default=True, description="Day speakers take turns in seat order")
    axy_chat_bridge: bool = Field(default=True, description="Stored setting only")
    voting_chat_mode: VotingChatMode = Field(default=VotingChatMode.CLOSED)


class JoinSessionRequest(BaseModel):
    """Body for POST /sessions/join."""

    session_code: str = Field(..., min_length=1, max_length=MAX_SESSION_CODE_LENGTH)

    @field_validator("session_code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        code = v.strip().upper()
        if not code:
            raise ValueError("session_code must not be blank")
        return code


class AddAIPlayerRequest(BaseModel):
    """Body for POST /sessions/{id}/ai-players. Name is trimmed and de-duplicated server side."""

    name: str | None = Field(default=None, max_length=MAX_AI_NAME_INPUT_LENGTH)


class UpdateSettingsRequest(BaseModel):
    """Body for PATCH /sessions/{id}/settings. Omitted fields stay unchanged."""

    presence_mode: bool | None = None
    axy_chat_bridge: bool | None = None
    voting_chat_mode: VotingChatMode | None = None


class TargetRequest(BaseModel):
    """Body for night actions and votes."""

    target_player_id: str = Field(..., min_length=1)


class MessageRequest(BaseModel):
    """Body for POST /sessions/{id}/messages. The engine enforces the per-message limit."""

    content: str = Field(..., max_length=MAX_MESSAGE_INPUT_LENGTH)


class SessionPublic(BaseModel):
    id: str
    session_code: str
    host_user_id: str
    status: Status
    round_no: int
    min_players: int
    max_players: int
    presence_mode: bool
    axy_chat_bridge: bool
    voting_chat_mode: VotingChatMode
    current_speaker_player_id: str | None = None
    speaker_order: list[str] = Field(default_factory=list)
    speaker_index: int = 0
    speaker_turn_ends_at: datetime | None = None
    phase_ends_at: datetime | None = None
    winner: Winner | None = None
    created_at: datetime
    version: int = 0


class PlayerPublic(BaseModel):
    """Seat as shown to one viewer: role only when visible to them."""

    id: str
    username: str
    is_ai: bool
    seat_no: int
    is_alive: bool
    elimination_type: str | None = None
    role: Role | None = Field(default=None, description="Own role, revealed roles, or all roles once ended")


class MePublic(BaseModel):
    id: str
    username: str
    seat_no: int
    is_alive: bool
    role: Role | None = None
    is_host: bool


class EventPublic(BaseModel):
    id: int
    round_no: int
    phase: str
    kind: str
    scope: str
    content: str
    target_player_id: str | None = None
    created_at: datetime | None = None


class DayMessagePublic(BaseModel):
    id: int
    round_no: int
    sender_player_id: str
    username: str
    content: str
    created_at: datetime | None = None


class NightActionPublic(BaseModel):
    action_type: str
    target_player_id: str


class VotePublic(BaseModel):
    target_player_id: str


class CountsPublic(BaseModel):
    total_players: int
    alive_players: int
    votes_this_round: int
    actions_this_round: int


class SessionStateResponse(BaseModel):
    """Viewer-filtered state for GET /sessions/{id}."""

    session: SessionPublic
    me: MePublic
    players: list[PlayerPublic]
    events: list[EventPublic]
    day_messages: list[DayMessagePublic]
    my_round_action: NightActionPublic | None = None
    my_round_vote: VotePublic | None = None
    counts: CountsPublic


class CreateSessionResponse(BaseModel):
    session_id: str
    session_code: str


class AIPlayerResponse(BaseModel):
    id: str
    username: str
    seat_no: int


class CommandResponse(BaseModel):
    """Acknowledgement for a command. Only public outcomes are included."""

    ok: bool = True
    unchanged: bool = False
    winner: Winner | None = None
    all_voted: bool | None = None
    victim_player_id: str | None = None
    exiled_player_id: str | None = None
    tie: bool | None = None


class LobbySummaryPublic(BaseModel):
    session_id: str
    session_code: str
    host_user_id: str
    player_count: int
    max_players: int
    presence_mode: bool
    created_at: datetime
    joined: bool


class LobbyListResponse(BaseModel):
    lobbies: list[LobbySummaryPublic]
    my_sessions: list[SessionPublic]


def session_to_public(session: Session) -> SessionPublic:
    return SessionPublic(
        id=session.id,
        session_code=session.session_code,
        host_user_id=session.host_user_id,
        status=session.status,
        round_no=session.round_no,
        min_players=session.min_players,
        max_players=session.max_players,
        presence_mode=session.presence_mode,
        axy_chat_bridge=session.axy_chat_bridge,
        voting_chat_mode=session.voting_chat_mode,
        current_speaker_player_id=session.current_speaker_player_id,
        speaker_order=list(session.speaker_order),
        speaker_index=session.speaker_index,
        speaker_turn_ends_at=session.speaker_turn_ends_at,
        phase_ends_at=session.phase_ends_at,
        winner=session.winner,
        created_at=session.created_at,
        version=session.version,
    )


def event_to_public(event: Event) -> EventPublic:
    return EventPublic(
        id=event.id,
        round_no=event.round_no,
        phase=event.phase.value,
        kind=event.kind.value,
        scope=event.scope.value,
        content=event.content,
        target_player_id=event.target_player_id,
        created_at=event.created_at,
    )


def day_message_to_public(message: DayMessage) -> DayMessagePublic:
    return DayMessagePublic(
        id=message.id,
        round_no=message.round_no,
        sender_player_id=message.sender_player_id,
        username=message.username,
        content=message.content,
        created_at=message.created_at,
    )


def _action_to_public(action: NightAction | None) -> NightActionPublic | None:
    if action is None:
        return None
    return NightActionPublic(action_type=action.action_type.value, target_player_id=action.target_player_id)


def _vote_to_public(vote: Vote | None) -> VotePublic | None:
    if vote is None:
        return None
    return VotePublic(target_player_id=vote.target_player_id)


def viewer_state_to_public(state: ViewerState) -> SessionStateResponse:
    """Build the response from an already viewer-filtered ViewerState."""
    me = state.me
    return SessionStateResponse(
        session=session_to_public(state.session),
        me=MePublic(
            id=me.id,
            username=me.username,
            seat_no=me.seat_no,
            is_alive=me.is_alive,
            role=me.role,
            is_host=state.is_host,
        ),
        players=[
            PlayerPublic(
                id=p.id,
                username=p.username,
                is_ai=p.is_ai,
                seat_no=p.seat_no,
                is_alive=p.is_alive,
                elimination_type=p.elimination_type,
                role=p.role,
            )
            for p in state.players
        ],
        events=[event_to_public(e) for e in state.events],
        day_messages=[day_message_to_public(m) for m in state.day_messages],
        my_round_action=_action_to_public(state.my_round_action),
        my_round_vote=_vote_to_public(state.my_round_vote),
        counts=CountsPublic(
            total_players=state.counts.total_players,
            alive_players=state.counts.alive_players,
            votes_this_round=state.counts.votes_this_round,
            actions_this_round=state.counts.actions_this_round,
        ),
    )


def lobby_listing_to_public(listing: LobbyListing) -> LobbyListResponse:
    return LobbyListResponse(
        lobbies=[
            LobbySummaryPublic(
                session_id=item.session.id,
                session_code=item.session.session_code,
                host_user_id=item.session.host_user_id,
                player_count=item.player_count,
                max_players=item.session.max_players,
                presence_mode=item.session.presence_mode,
                created_at=item.session.created_at,
                joined=item.joined,
            )
            for item in listing.lobbies
        ],
        my_sessions=[session_to_public(s) for s in listing.my_sessions],
    )


def command_result_to_public(result: CommandResult) -> CommandResponse:
    """Expose winner, victim, exile and tie. Guardian and shadow picks stay private."""
    return CommandResponse(
        unchanged=result.unchanged,
        winner=result.winner,
        all_voted=result.all_voted,
        victim_player_id=result.night.victim_id if result.night else None,
        exiled_player_id=result.vote.exiled_id if result.vote else None,
        tie=result.vote.tie if result.vote else None,
    )
