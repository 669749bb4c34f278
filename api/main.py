"""FastAPI app: lobby, phase commands and the viewer read model for Night Protocol."""

import logging

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from agents.lines import get_day_lines
from api.deps import get_chat_limiter, get_engine, get_user_id
from api.models import (
    AddAIPlayerRequest,
    AIPlayerResponse,
    CommandResponse,
    CreateSessionRequest,
    CreateSessionResponse,
    DayMessagePublic,
    JoinSessionRequest,
    LobbyListResponse,
    MessageRequest,
    SessionStateResponse,
    TargetRequest,
    UpdateSettingsRequest,
    command_result_to_public,
    day_message_to_public,
    lobby_listing_to_public,
    viewer_state_to_public,
)
from api.rate_limit import ChatRateLimiter
from circle.config import EngineConfig
from circle.engine import SessionEngine
from circle.errors import (
    AuthorizationError,
    ConflictError,
    GameError,
    NotFoundError,
)
from circle.store import InMemorySessionStore

logger = logging.getLogger(__name__)

app = FastAPI(title="Night Protocol API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Process-owned collaborators; tests swap these on app.state
app.state.engine = SessionEngine(InMemorySessionStore(), EngineConfig.from_env())
app.state.chat_limiter = ChatRateLimiter.from_env()


def _status_for(exc: GameError) -> int:
    if isinstance(exc, ConflictError):
        return 409
    if isinstance(exc, AuthorizationError):
        return 403
    if isinstance(exc, NotFoundError):
        return 404
    return 400


@app.exception_handler(GameError)
def game_error_handler(request: Request, exc: GameError) -> JSONResponse:
    status = _status_for(exc)
    logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=status, content={"detail": exc.message, "kind": exc.kind})


@app.get("/sessions", response_model=LobbyListResponse, tags=["Sessions"], summary="List lobbies")
def list_sessions(
    user_id: str = Depends(get_user_id),
    engine: SessionEngine = Depends(get_engine),
):
    """Open lobbies (newest first) and the caller's unfinished sessions."""
    return lobby_listing_to_public(engine.list_lobbies(user_id))


@app.post("/sessions", response_model=CreateSessionResponse, tags=["Sessions"], summary="Create session")
def create_session(
    body: CreateSessionRequest,
    user_id: str = Depends(get_user_id),
    engine: SessionEngine = Depends(get_engine),
):
    """Create a lobby with the caller as host. Returns session id and join code."""
    session = engine.create_session(
        user_id,
        max_players=body.max_players,
        presence_mode=body.presence_mode,
        axy_chat_bridge=body.axy_chat_bridge,
        voting_chat_mode=body.voting_chat_mode,
    )
    return CreateSessionResponse(session_id=session.id, session_code=session.session_code)


@app.post("/sessions/join", response_model=CreateSessionResponse, tags=["Sessions"], summary="Join by code")
def join_session(
    body: JoinSessionRequest,
    user_id: str = Depends(get_user_id),
    engine: SessionEngine = Depends(get_engine),
):
    session = engine.join_session(user_id, body.session_code)
    return CreateSessionResponse(session_id=session.id, session_code=session.session_code)


@app.get("/sessions/{session_id}", response_model=SessionStateResponse, tags=["Sessions"], summary="Get state")
def get_session_state(
    session_id: str,
    user_id: str = Depends(get_user_id),
    engine: SessionEngine = Depends(get_engine),
):
    """State filtered to the caller's seat: own role, revealed roles, public and own private events."""
    return viewer_state_to_public(engine.get_state(user_id, session_id))


@app.post(
    "/sessions/{session_id}/ai-players",
    response_model=AIPlayerResponse,
    tags=["Lobby"],
    summary="Add AI seat",
)
def add_ai_player(
    session_id: str,
    body: AddAIPlayerRequest,
    user_id: str = Depends(get_user_id),
    engine: SessionEngine = Depends(get_engine),
):
    player = engine.add_ai_player(user_id, session_id, name=body.name)
    return AIPlayerResponse(id=player.id, username=player.username, seat_no=player.seat_no)


@app.patch(
    "/sessions/{session_id}/settings",
    response_model=CommandResponse,
    tags=["Lobby"],
    summary="Update settings",
)
def update_settings(
    session_id: str,
    body: UpdateSettingsRequest,
    user_id: str = Depends(get_user_id),
    engine: SessionEngine = Depends(get_engine),
):
    """Host only. Presence Mode can change only in the lobby."""
    result = engine.update_settings(
        user_id,
        session_id,
        presence_mode=body.presence_mode,
        axy_chat_bridge=body.axy_chat_bridge,
        voting_chat_mode=body.voting_chat_mode,
    )
    return command_result_to_public(result)


@app.post("/sessions/{session_id}/start", response_model=CommandResponse, tags=["Phases"], summary="Start game")
def start_session(
    session_id: str,
    user_id: str = Depends(get_user_id),
    engine: SessionEngine = Depends(get_engine),
):
    return command_result_to_public(engine.start_session(user_id, session_id))


@app.post(
    "/sessions/{session_id}/night-action",
    response_model=CommandResponse,
    tags=["Night"],
    summary="Submit night action",
)
def submit_night_action(
    session_id: str,
    body: TargetRequest,
    user_id: str = Depends(get_user_id),
    engine: SessionEngine = Depends(get_engine),
):
    """Action type follows the caller's role. Resubmitting replaces the earlier target."""
    return command_result_to_public(engine.submit_night_action(user_id, session_id, body.target_player_id))


@app.post(
    "/sessions/{session_id}/resolve-night",
    response_model=CommandResponse,
    tags=["Night"],
    summary="Resolve night",
)
def resolve_night(
    session_id: str,
    user_id: str = Depends(get_user_id),
    engine: SessionEngine = Depends(get_engine),
):
    return command_result_to_public(engine.resolve_night(user_id, session_id))


@app.post(
    "/sessions/{session_id}/messages",
    response_model=DayMessagePublic,
    tags=["Day"],
    summary="Send day message",
)
def send_day_message(
    session_id: str,
    body: MessageRequest,
    user_id: str = Depends(get_user_id),
    engine: SessionEngine = Depends(get_engine),
    limiter: ChatRateLimiter = Depends(get_chat_limiter),
):
    if not limiter.allow(user_id):
        raise HTTPException(429, "Too many messages; slow down")
    message = engine.send_day_message(user_id, session_id, body.content)
    return day_message_to_public(message)


@app.post(
    "/sessions/{session_id}/advance-turn",
    response_model=CommandResponse,
    tags=["Day"],
    summary="Next speaker",
)
def advance_day_turn(
    session_id: str,
    user_id: str = Depends(get_user_id),
    engine: SessionEngine = Depends(get_engine),
):
    """Pass the floor to the next living seat; opens voting once the order is exhausted."""
    return command_result_to_public(engine.advance_day_turn(user_id, session_id))


@app.post(
    "/sessions/{session_id}/begin-voting",
    response_model=CommandResponse,
    tags=["Day"],
    summary="Begin voting",
)
def begin_voting(
    session_id: str,
    user_id: str = Depends(get_user_id),
    engine: SessionEngine = Depends(get_engine),
):
    return command_result_to_public(engine.begin_voting(user_id, session_id))


@app.post("/sessions/{session_id}/votes", response_model=CommandResponse, tags=["Voting"], summary="Cast vote")
def submit_vote(
    session_id: str,
    body: TargetRequest,
    user_id: str = Depends(get_user_id),
    engine: SessionEngine = Depends(get_engine),
):
    """Returns all_voted=true once every living seat has a vote this round."""
    return command_result_to_public(engine.submit_vote(user_id, session_id, body.target_player_id))


@app.post(
    "/sessions/{session_id}/resolve-vote",
    response_model=CommandResponse,
    tags=["Voting"],
    summary="Resolve vote",
)
def resolve_vote(
    session_id: str,
    user_id: str = Depends(get_user_id),
    engine: SessionEngine = Depends(get_engine),
):
    return command_result_to_public(engine.resolve_vote(user_id, session_id))


@app.post("/sessions/{session_id}/sync-ai", response_model=CommandResponse, tags=["AI"], summary="Sync AI seats")
def sync_ai(
    session_id: str,
    user_id: str = Depends(get_user_id),
    engine: SessionEngine = Depends(get_engine),
):
    """Fill in missing AI actions, votes or Day lines for the current phase."""
    return command_result_to_public(engine.sync_ai(user_id, session_id))


@app.get("/health", tags=["System"], summary="Health check")
def health():
    return {"status": "ok"}


@app.get("/settings/day-lines", response_model=dict, tags=["Settings"], summary="Get AI day lines")
def get_day_lines_route():
    """Return the canned Day lines AI seats choose from, keyed by role."""
    return get_day_lines()
