"""Session engine: validates commands, runs resolvers, writes through the store.

Every command loads what it needs, validates fully, and only then writes.
Phase changes commit the session first with a compare-and-set on its version,
so a command that loses a race writes nothing at all.
"""

import dataclasses
import logging
import random
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Sequence

from agents.policy import choose_night_action, choose_vote_target, day_line
from circle import narration
from circle.config import EngineConfig
from circle.errors import (
    AuthorizationError,
    CapacityError,
    ConflictError,
    NotFoundError,
    PhaseError,
    ValidationError,
)
from circle.resolution import compute_winner, resolve_night, resolve_vote
from circle.roles import assign_roles
from circle.rules import (
    ACTION_ACK,
    DEFAULT_AI_NAME,
    ROLE_REVEAL_LINE,
    SESSION_CODE_ALPHABET,
    SESSION_CODE_LENGTH,
    EliminationType,
    NightActionType,
    Role,
    Status,
    VotingChatMode,
    Winner,
    action_type_for,
)
from circle.speakers import build_presence_order, next_speaker
from circle.state import (
    DayMessage,
    Event,
    EventKind,
    EventPhase,
    EventScope,
    NightAction,
    NightOutcome,
    Player,
    Roster,
    Session,
    Vote,
    VoteOutcome,
)
from circle.store import SessionStore
from circle.views import LobbyListing, LobbySummary, ViewerState, build_viewer_state

logger = logging.getLogger(__name__)

SESSION_CODE_ATTEMPTS = 20


@dataclass(frozen=True)
class CommandResult:
    """Acknowledgement of a successful command plus whatever it computed."""

    winner: Optional[Winner] = None
    unchanged: bool = False
    all_voted: Optional[bool] = None
    night: Optional[NightOutcome] = None
    vote: Optional[VoteOutcome] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionEngine:
    """Command surface over one storage collaborator. Holds no game state of its own."""

    def __init__(
        self,
        store: SessionStore,
        config: Optional[EngineConfig] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = _utcnow,
        display_name: Optional[Callable[[str], Optional[str]]] = None,
    ) -> None:
        self.store = store
        self.config = config or EngineConfig()
        self._rng = rng or random.Random()
        self._clock = clock
        self._display_name = display_name

    # ------------------------------------------------------------------ lobby

    def create_session(
        self,
        user_id: str,
        max_players: Optional[int] = None,
        presence_mode: bool = True,
        axy_chat_bridge: bool = True,
        voting_chat_mode: VotingChatMode | str = VotingChatMode.CLOSED,
    ) -> Session:
        """Open a new LOBBY with the caller as host in seat 1."""
        mode = _coerce_chat_mode(voting_chat_mode)
        cfg = self.config
        capacity = cfg.max_players if max_players is None else max_players
        capacity = max(cfg.min_players, min(cfg.max_players, int(capacity)))
        now = self._clock()

        session = Session(
            id=str(uuid.uuid4()),
            session_code=self._unique_session_code(),
            host_user_id=user_id,
            created_at=now,
            min_players=cfg.min_players,
            max_players=capacity,
            presence_mode=presence_mode,
            axy_chat_bridge=axy_chat_bridge,
            voting_chat_mode=mode,
        )
        self.store.insert_session(session)
        self.store.insert_player(self._human_seat(session, user_id, seat_no=1))

        lines = [line.format(min_players=cfg.min_players) for line in narration.WELCOME_LINES]
        events = [self._event(session, EventPhase.LOBBY, EventKind.SYSTEM, line) for line in lines]
        events.append(
            self._event(session, EventPhase.LOBBY, EventKind.LOBBY, narration.circle_count(1, capacity))
        )
        self.store.append_events(events)
        logger.info("Session %s created by %s (code %s)", session.id, user_id, session.session_code)
        return session

    def join_session(self, user_id: str, session_code: str) -> Session:
        """Seat the caller in the lobby with this code. Joining twice is a no-op."""
        code = (session_code or "").strip().upper()
        if not code:
            raise ValidationError("session code required")
        session = self.store.find_session_by_code(code)
        if session is None:
            raise NotFoundError("session not found")
        if session.status != Status.LOBBY:
            raise PhaseError("session already started")
        players = self.store.list_players(session.id)
        if any(p.user_id == user_id for p in players):
            return session
        if len(players) >= session.max_players:
            raise CapacityError("circle is full")

        self._commit(session, session)
        player = self._human_seat(session, user_id, seat_no=_next_seat(players))
        self.store.insert_player(player)
        self.store.append_events([
            self._event(session, EventPhase.LOBBY, EventKind.LOBBY, f"{player.username} entered the Circle."),
            self._event(
                session,
                EventPhase.LOBBY,
                EventKind.LOBBY,
                narration.circle_count(len(players) + 1, session.max_players),
            ),
        ])
        logger.info("User %s joined session %s", user_id, session.id)
        return session

    def add_ai_player(self, user_id: str, session_id: str, name: Optional[str] = None) -> Player:
        """Host adds an AI seat. Names are trimmed and de-duplicated case-insensitively."""
        session, players = self._load_for(user_id, session_id)
        self._require_host(session, user_id)
        if session.status != Status.LOBBY:
            raise PhaseError("lobby only")
        if len(players) >= session.max_players:
            raise CapacityError("circle is full")

        limit = self.config.max_ai_name_length
        base = (name or "").strip() or DEFAULT_AI_NAME
        candidate = base[:limit]
        taken = {p.username.lower() for p in players}
        suffix = 2
        while candidate.lower() in taken:
            candidate = f"{base[:limit - 4]} {suffix}"
            suffix += 1

        self._commit(session, session)
        player = Player(
            id=str(uuid.uuid4()),
            session_id=session.id,
            username=candidate,
            seat_no=_next_seat(players),
            joined_at=self._clock(),
            user_id=None,
            is_ai=True,
        )
        self.store.insert_player(player)
        self.store.append_events([
            self._event(session, EventPhase.LOBBY, EventKind.LOBBY, f"{candidate} (AI) entered the Circle."),
        ])
        return player

    def update_settings(
        self,
        user_id: str,
        session_id: str,
        presence_mode: Optional[bool] = None,
        axy_chat_bridge: Optional[bool] = None,
        voting_chat_mode: VotingChatMode | str | None = None,
    ) -> CommandResult:
        """Host changes settings. Presence Mode is locked once the game starts."""
        session, _ = self._load_for(user_id, session_id)
        self._require_host(session, user_id)
        if session.ended:
            raise PhaseError("session ended")

        updates: dict[str, object] = {}
        if axy_chat_bridge is not None:
            updates["axy_chat_bridge"] = bool(axy_chat_bridge)
        if voting_chat_mode is not None:
            updates["voting_chat_mode"] = _coerce_chat_mode(voting_chat_mode)
        if presence_mode is not None:
            if session.status != Status.LOBBY:
                raise PhaseError("presence mode can only be changed in lobby")
            updates["presence_mode"] = bool(presence_mode)
        if not updates:
            return CommandResult(unchanged=True)

        self._commit(session, dataclasses.replace(session, **updates))
        self.store.append_events([
            self._event(session, EventPhase(session.status.value), EventKind.SYSTEM, narration.SETTINGS_UPDATED),
        ])
        return CommandResult()

    def start_session(self, user_id: str, session_id: str) -> CommandResult:
        """Deal roles and open round 1 at NIGHT."""
        session, players = self._load_for(user_id, session_id)
        self._require_host(session, user_id)
        if session.status != Status.LOBBY:
            raise PhaseError("already started")
        if len(players) < session.min_players:
            raise CapacityError(f"minimum players: {session.min_players}")

        dealt = assign_roles(players, self._rng)
        now = self._clock()
        started = dataclasses.replace(
            session,
            status=Status.NIGHT,
            round_no=1,
            current_speaker_player_id=None,
            speaker_order=(),
            speaker_index=0,
            speaker_turn_ends_at=None,
            phase_ends_at=now + timedelta(seconds=self.config.night_seconds),
            winner=None,
        )
        self._commit(session, started)
        self.store.update_players(dealt)

        shadows = [p for p in dealt if p.role == Role.SHADOW]
        events = [self._event(started, EventPhase.LOBBY, EventKind.SYSTEM, narration.ROLES_DEALT)]
        for player in dealt:
            events.append(self._private(started, EventPhase.LOBBY, EventKind.ROLE, player.id,
                                        ROLE_REVEAL_LINE[player.role or Role.CITIZEN]))
        for shadow in shadows:
            mates = [m.username for m in shadows if m.id != shadow.id]
            events.append(self._private(started, EventPhase.LOBBY, EventKind.ROLE, shadow.id,
                                        narration.shadow_mates(mates)))
        events.extend(self._night_opening(started))
        self.store.append_events(events)

        self._apply_ai_night_actions(started, Roster(dealt))
        logger.info("Session %s started with %d players", session.id, len(dealt))
        return CommandResult()

    # ------------------------------------------------------------------ night

    def submit_night_action(self, user_id: str, session_id: str, target_player_id: str) -> CommandResult:
        """Record the caller's night action for this round, replacing any earlier one."""
        session, players = self._load_for(user_id, session_id)
        me = self._require_seat(players, user_id)
        if session.status != Status.NIGHT:
            raise PhaseError("night phase required")
        if not me.is_alive:
            raise ValidationError("eliminated players cannot act")
        action_type = action_type_for(me.role)
        if action_type is None:
            raise ValidationError("your role has no night action")
        roster = Roster(players)
        target = roster.get(target_player_id)
        if target is None or not target.is_alive:
            raise ValidationError("target is not alive")
        if action_type == NightActionType.SHADOW_TARGET and target.role == Role.SHADOW:
            raise ValidationError("shadows cannot target shadows")
        if action_type == NightActionType.ORACLE_PEEK and target.id == me.id:
            raise ValidationError("oracle cannot seek their own truth")

        self.store.upsert_night_action(
            NightAction(
                session_id=session.id,
                round_no=session.round_no,
                actor_player_id=me.id,
                action_type=action_type,
                target_player_id=target.id,
                created_at=self._clock(),
            )
        )
        self.store.append_events([
            self._private(session, EventPhase.NIGHT, EventKind.ACK, me.id, ACTION_ACK[me.role]),
        ])
        return CommandResult()

    def resolve_night(self, user_id: str, session_id: str) -> CommandResult:
        """Apply this round's night actions; open Day or end the game."""
        session, players = self._load_for(user_id, session_id)
        self._require_host(session, user_id)
        if session.status != Status.NIGHT:
            raise PhaseError("night phase required")

        roster = Roster(players)
        actions = self.store.list_night_actions(session.id, session.round_no)
        outcome = resolve_night(roster, actions)
        now = self._clock()

        changed: list[Player] = []
        if outcome.victim_id:
            victim = dataclasses.replace(
                roster.get(outcome.victim_id),
                is_alive=False,
                elimination_type=EliminationType.NIGHT_FADE,
                eliminated_at=now,
            )
            roster = roster.replace(victim)
            changed.append(victim)
        winner = compute_winner(roster)

        events = [self._event(session, EventPhase.NIGHT, EventKind.SYSTEM, narration.NIGHT_LOCKED)]
        for result in outcome.oracle_results:
            events.append(self._private(
                session, EventPhase.NIGHT, EventKind.ORACLE_TRUTH, result.oracle_player_id,
                narration.oracle_truth(roster.name_of(result.target_player_id), result.role),
            ))
        victim_name = roster.name_of(outcome.victim_id) if outcome.victim_id else None
        events.append(self._event(session, EventPhase.DAY, EventKind.SYSTEM, narration.dawn(victim_name)))

        if winner:
            self._finish(session, roster, changed, events, winner)
            logger.info("Session %s ended after night %d: %s", session.id, session.round_no, winner.value)
            return CommandResult(winner=winner, night=outcome)

        order = build_presence_order(roster) if session.presence_mode else ()
        speaker_id = order[0] if order else None
        day = dataclasses.replace(
            session,
            status=Status.DAY,
            current_speaker_player_id=speaker_id,
            speaker_order=order,
            speaker_index=0,
            speaker_turn_ends_at=(
                now + timedelta(seconds=self.config.speaker_seconds) if session.presence_mode else None
            ),
            phase_ends_at=None,
        )
        self._commit(session, day)
        if changed:
            self.store.update_players(changed)

        for line in narration.DAY_OPENING:
            events.append(self._event(day, EventPhase.DAY, EventKind.SYSTEM, line))
        if day.presence_mode:
            events.append(self._event(day, EventPhase.DAY, EventKind.SYSTEM,
                                      narration.presence_active(self.config.speaker_seconds)))
            events.append(self._event(day, EventPhase.DAY, EventKind.TURN,
                                      narration.your_turn(roster.name_of(speaker_id))))
        else:
            events.append(self._event(day, EventPhase.DAY, EventKind.SYSTEM, narration.OPEN_DISCUSSION))
        self.store.append_events(events)

        self._post_ai_day_lines(day, roster)
        logger.info("Session %s night %d resolved, victim=%s", session.id, session.round_no, outcome.victim_id)
        return CommandResult(night=outcome)

    # -------------------------------------------------------------------- day

    def send_day_message(self, user_id: str, session_id: str, content: str) -> DayMessage:
        """Post to Day chat. In Presence Mode only the current speaker may post."""
        session, players = self._load_for(user_id, session_id)
        me = self._require_seat(players, user_id)
        day_open = session.status == Status.DAY
        voting_open = (
            session.status == Status.VOTING
            and session.voting_chat_mode == VotingChatMode.OPEN_SHORT
        )
        if not day_open and not voting_open:
            raise PhaseError("chat is closed in this phase")
        if not me.is_alive:
            raise ValidationError("eliminated players cannot speak")
        text = (content or "").strip()
        if not text:
            raise ValidationError("content required")
        if len(text) > self.config.max_message_length:
            raise ValidationError("message too long")
        if day_open and session.presence_mode and session.current_speaker_player_id != me.id:
            raise AuthorizationError("not your turn")

        return self.store.append_day_message(
            DayMessage(
                session_id=session.id,
                round_no=session.round_no,
                sender_player_id=me.id,
                username=me.username,
                content=text,
                created_at=self._clock(),
            )
        )

    def advance_day_turn(self, user_id: str, session_id: str) -> CommandResult:
        """Pass the floor to the next living seat; open voting once everyone has spoken."""
        session, players = self._load_for(user_id, session_id)
        self._require_host(session, user_id)
        if session.status != Status.DAY:
            raise PhaseError("day phase required")
        if not session.presence_mode:
            raise PhaseError("presence mode disabled")

        roster = Roster(players)
        index, speaker_id = next_speaker(session.speaker_order, session.speaker_index, roster)
        if speaker_id is None:
            self._open_voting(session, roster, prefix=[narration.TURN_OVER], announce_timer=True)
            return CommandResult()

        turn = dataclasses.replace(
            session,
            speaker_index=index,
            current_speaker_player_id=speaker_id,
            speaker_turn_ends_at=self._clock() + timedelta(seconds=self.config.speaker_seconds),
        )
        self._commit(session, turn)
        self.store.append_events([
            self._event(turn, EventPhase.DAY, EventKind.TURN, narration.TURN_OVER),
            self._event(turn, EventPhase.DAY, EventKind.TURN, narration.your_turn(roster.name_of(speaker_id))),
        ])
        self._post_ai_day_lines(turn, roster)
        return CommandResult()

    def begin_voting(self, user_id: str, session_id: str) -> CommandResult:
        """Host closes Day discussion early."""
        session, players = self._load_for(user_id, session_id)
        self._require_host(session, user_id)
        if session.status != Status.DAY:
            raise PhaseError("day phase required")
        self._open_voting(session, Roster(players), prefix=[], announce_timer=False)
        return CommandResult()

    # ----------------------------------------------------------------- voting

    def submit_vote(self, user_id: str, session_id: str, target_player_id: str) -> CommandResult:
        """Record the caller's vote for this round, replacing any earlier one."""
        session, players = self._load_for(user_id, session_id)
        me = self._require_seat(players, user_id)
        if session.status != Status.VOTING:
            raise PhaseError("voting phase required")
        if not me.is_alive:
            raise ValidationError("eliminated players cannot vote")
        roster = Roster(players)
        target = roster.get(target_player_id)
        if target is None or not target.is_alive:
            raise ValidationError("target is not alive")
        if target.id == me.id:
            raise ValidationError("cannot vote yourself")

        self.store.upsert_vote(
            Vote(
                session_id=session.id,
                round_no=session.round_no,
                voter_player_id=me.id,
                target_player_id=target.id,
                created_at=self._clock(),
            )
        )
        self.store.append_events([
            self._private(session, EventPhase.VOTING, EventKind.ACK, me.id, narration.VOTE_ACK),
        ])
        votes = self.store.list_votes(session.id, session.round_no)
        alive_ids = roster.alive_ids()
        voted = {v.voter_player_id for v in votes if v.voter_player_id in alive_ids}
        return CommandResult(all_voted=len(voted) >= len(alive_ids))

    def resolve_vote(self, user_id: str, session_id: str) -> CommandResult:
        """Apply this round's votes; start the next night or end the game."""
        session, players = self._load_for(user_id, session_id)
        self._require_host(session, user_id)
        if session.status != Status.VOTING:
            raise PhaseError("voting phase required")

        roster = Roster(players)
        votes = self.store.list_votes(session.id, session.round_no)
        outcome = resolve_vote(roster, votes)
        now = self._clock()

        changed: list[Player] = []
        events = [self._event(session, EventPhase.VOTING, EventKind.SYSTEM, narration.VOTING_CLOSED)]
        if outcome.exiled_id:
            exiled = roster.get(outcome.exiled_id)
            exiled = dataclasses.replace(
                exiled,
                is_alive=False,
                elimination_type=EliminationType.EXILE,
                revealed_role=exiled.role,
                eliminated_at=now,
            )
            roster = roster.replace(exiled)
            changed.append(exiled)
            chosen, gone, truth = narration.exile_lines(exiled.username, exiled.role)
            events.append(self._event(session, EventPhase.VOTING, EventKind.SYSTEM, chosen))
            events.append(self._event(session, EventPhase.VOTING, EventKind.SYSTEM, gone))
            events.append(self._event(session, EventPhase.VOTING, EventKind.REVEAL, truth))
        else:
            events.append(self._event(session, EventPhase.VOTING, EventKind.SYSTEM, narration.VOTE_SPLIT))

        winner = compute_winner(roster)
        if winner:
            self._finish(session, roster, changed, events, winner)
            logger.info("Session %s ended after vote %d: %s", session.id, session.round_no, winner.value)
            return CommandResult(winner=winner, vote=outcome)

        night = dataclasses.replace(
            session,
            status=Status.NIGHT,
            round_no=session.round_no + 1,
            current_speaker_player_id=None,
            speaker_order=(),
            speaker_index=0,
            speaker_turn_ends_at=None,
            phase_ends_at=now + timedelta(seconds=self.config.night_seconds),
        )
        self._commit(session, night)
        if changed:
            self.store.update_players(changed)
        events.extend(self._night_opening(night))
        self.store.append_events(events)

        self._apply_ai_night_actions(night, roster)
        logger.info("Session %s vote %d resolved, exiled=%s", session.id, session.round_no, outcome.exiled_id)
        return CommandResult(vote=outcome)

    # --------------------------------------------------------------------- ai

    def sync_ai(self, user_id: str, session_id: str) -> CommandResult:
        """Catch AI seats up for the current phase. Seats that already acted are left alone."""
        session, players = self._load_for(user_id, session_id)
        self._require_host(session, user_id)
        if session.ended:
            raise PhaseError("session ended")
        roster = Roster(players)
        if session.status == Status.NIGHT:
            self._apply_ai_night_actions(session, roster)
        elif session.status == Status.VOTING:
            self._apply_ai_votes(session, roster)
        elif session.status == Status.DAY:
            self._post_ai_day_lines(session, roster)
        return CommandResult()

    def _apply_ai_night_actions(self, session: Session, roster: Roster) -> int:
        existing = {
            (a.actor_player_id, a.action_type)
            for a in self.store.list_night_actions(session.id, session.round_no)
        }
        written = 0
        for player in roster.alive():
            if not player.is_ai:
                continue
            if (player.id, action_type_for(player.role)) in existing:
                continue
            decision = choose_night_action(player, roster, self._rng)
            if decision is None:
                continue
            self.store.upsert_night_action(
                NightAction(
                    session_id=session.id,
                    round_no=session.round_no,
                    actor_player_id=player.id,
                    action_type=decision.action_type,
                    target_player_id=decision.target_id,
                    created_at=self._clock(),
                )
            )
            written += 1
        return written

    def _apply_ai_votes(self, session: Session, roster: Roster) -> int:
        voted = {v.voter_player_id for v in self.store.list_votes(session.id, session.round_no)}
        written = 0
        for player in roster.alive():
            if not player.is_ai or player.id in voted:
                continue
            target_id = choose_vote_target(player, roster, self._rng)
            if target_id is None:
                continue
            self.store.upsert_vote(
                Vote(
                    session_id=session.id,
                    round_no=session.round_no,
                    voter_player_id=player.id,
                    target_player_id=target_id,
                    created_at=self._clock(),
                )
            )
            written += 1
        return written

    def _post_ai_day_lines(self, session: Session, roster: Roster) -> int:
        """Current AI speaker in Presence Mode, otherwise every living AI seat; once per Day."""
        if session.presence_mode:
            speaker = roster.get(session.current_speaker_player_id)
            candidates = [speaker] if speaker else []
        else:
            candidates = roster.alive()
        spoken = {
            m.sender_player_id
            for m in self.store.list_day_messages(session.id, session.round_no)
        }
        written = 0
        for player in candidates:
            if not player.is_ai or not player.is_alive or player.id in spoken:
                continue
            self.store.append_day_message(
                DayMessage(
                    session_id=session.id,
                    round_no=session.round_no,
                    sender_player_id=player.id,
                    username=player.username,
                    content=day_line(player.role, self._rng),
                    created_at=self._clock(),
                )
            )
            written += 1
        return written

    # ------------------------------------------------------------------ reads

    def get_state(self, user_id: str, session_id: str) -> ViewerState:
        """Serialized state filtered to what the caller's seat may see."""
        session = self._load(session_id)
        players = self.store.list_players(session_id)
        me = self._require_seat(players, user_id, message="not in session")
        return build_viewer_state(
            session,
            players,
            me,
            self.store.list_events(session_id),
            self.store.list_day_messages(session_id),
            self.store.list_night_actions(session_id, session.round_no),
            self.store.list_votes(session_id, session.round_no),
        )

    def list_lobbies(self, user_id: str, limit: int = 30) -> LobbyListing:
        """Open lobbies (newest first) and the caller's unfinished sessions."""
        joined = self.store.session_ids_for_user(user_id)
        lobbies = [
            LobbySummary(
                session=s,
                player_count=len(self.store.list_players(s.id)),
                joined=s.id in joined,
            )
            for s in self.store.list_sessions(Status.LOBBY)[:limit]
        ]
        mine = [
            s for s in self.store.list_sessions()
            if s.id in joined and s.status != Status.ENDED
        ]
        return LobbyListing(lobbies=lobbies, my_sessions=mine)

    # ---------------------------------------------------------------- helpers

    def _load(self, session_id: str) -> Session:
        session = self.store.get_session(session_id)
        if session is None:
            raise NotFoundError("session not found")
        return session

    def _load_for(self, user_id: str, session_id: str) -> tuple[Session, list[Player]]:
        """Load session and seats; the caller must be seated or be the host."""
        if not session_id:
            raise ValidationError("session id required")
        session = self._load(session_id)
        players = self.store.list_players(session_id)
        if session.host_user_id != user_id and not any(p.user_id == user_id for p in players):
            raise AuthorizationError("not in session")
        return session, players

    @staticmethod
    def _require_host(session: Session, user_id: str) -> None:
        if session.host_user_id != user_id:
            raise AuthorizationError("host only")

    @staticmethod
    def _require_seat(players: Sequence[Player], user_id: str, message: str = "not joined") -> Player:
        for player in players:
            if player.user_id == user_id:
                return player
        raise AuthorizationError(message)

    def _commit(self, loaded: Session, updated: Session) -> None:
        """Compare-and-set against the version we loaded; raises if someone got there first."""
        if not self.store.compare_and_set_session(updated, expected_version=loaded.version):
            logger.warning("Session %s changed concurrently; rejecting stale command", loaded.id)
            raise ConflictError("session changed, reload and retry")

    def _finish(
        self,
        session: Session,
        roster: Roster,
        changed: list[Player],
        events: list[Event],
        winner: Winner,
    ) -> None:
        """End the game: status, winner and every role revealed, written exactly once."""
        ended = dataclasses.replace(
            session,
            status=Status.ENDED,
            winner=winner,
            current_speaker_player_id=None,
            speaker_order=(),
            speaker_index=0,
            speaker_turn_ends_at=None,
            phase_ends_at=None,
        )
        self._commit(session, ended)
        revealed = {p.id: p for p in roster}
        for player in changed:
            revealed[player.id] = player
        self.store.update_players(
            dataclasses.replace(p, revealed_role=p.role) for p in revealed.values()
        )
        events.append(self._event(ended, EventPhase.END, EventKind.END, narration.game_over(winner)))
        self.store.append_events(events)

    def _open_voting(
        self,
        session: Session,
        roster: Roster,
        prefix: list[str],
        announce_timer: bool,
    ) -> None:
        voting = dataclasses.replace(
            session,
            status=Status.VOTING,
            current_speaker_player_id=None,
            speaker_turn_ends_at=None,
            phase_ends_at=self._clock() + timedelta(seconds=self.config.vote_seconds),
        )
        self._commit(session, voting)
        events = [self._event(voting, EventPhase.DAY, EventKind.TURN, line) for line in prefix]
        events.append(self._event(voting, EventPhase.VOTING, EventKind.SYSTEM, narration.VOTING_BEGINS))
        if announce_timer:
            events.append(self._event(voting, EventPhase.VOTING, EventKind.SYSTEM,
                                      narration.vote_timer(self.config.vote_seconds)))
        events.append(self._event(voting, EventPhase.VOTING, EventKind.SYSTEM,
                                  narration.voting_chat(voting.voting_chat_mode)))
        self.store.append_events(events)
        self._apply_ai_votes(voting, roster)
        logger.info("Session %s round %d voting opened", session.id, session.round_no)

    def _night_opening(self, session: Session) -> list[Event]:
        lines = [narration.round_begins(session.round_no), *narration.NIGHT_FALLS]
        return [self._event(session, EventPhase.NIGHT, EventKind.SYSTEM, line) for line in lines]

    def _event(self, session: Session, phase: EventPhase, kind: EventKind, content: str) -> Event:
        return Event(
            session_id=session.id,
            round_no=session.round_no,
            phase=phase,
            kind=kind,
            content=content,
            created_at=self._clock(),
        )

    def _private(
        self,
        session: Session,
        phase: EventPhase,
        kind: EventKind,
        target_player_id: str,
        content: str,
    ) -> Event:
        return dataclasses.replace(
            self._event(session, phase, kind, content),
            scope=EventScope.PRIVATE,
            target_player_id=target_player_id,
        )

    def _human_seat(self, session: Session, user_id: str, seat_no: int) -> Player:
        username = None
        if self._display_name is not None:
            username = self._display_name(user_id)
        return Player(
            id=str(uuid.uuid4()),
            session_id=session.id,
            username=(username or "").strip() or f"user-{user_id[:6]}",
            seat_no=seat_no,
            joined_at=self._clock(),
            user_id=user_id,
        )

    def _unique_session_code(self) -> str:
        for _ in range(SESSION_CODE_ATTEMPTS):
            code = "".join(self._rng.choice(SESSION_CODE_ALPHABET) for _ in range(SESSION_CODE_LENGTH))
            if self.store.find_session_by_code(code) is None:
                return code
        # Crowded code space: widen until free
        length = SESSION_CODE_LENGTH + 1
        while True:
            code = "".join(self._rng.choice(SESSION_CODE_ALPHABET) for _ in range(length))
            if self.store.find_session_by_code(code) is None:
                return code
            length += 1


def _next_seat(players: Sequence[Player]) -> int:
    return max((p.seat_no for p in players), default=0) + 1


def _coerce_chat_mode(value: VotingChatMode | str) -> VotingChatMode:
    try:
        return VotingChatMode(value)
    except ValueError:
        raise ValidationError(f"unknown voting chat mode: {value!r}") from None
