"""Storage collaborator: the narrow interface the engine reads and writes through.

InMemorySessionStore is the process-local implementation used by the API and
tests. Swap in a database-backed class with the same methods for durability.
"""

import dataclasses
import threading
from typing import Iterable, Optional, Protocol

from circle.rules import Status
from circle.state import DayMessage, Event, NightAction, Player, Session, Vote


class SessionStore(Protocol):
    """What the engine needs from storage, scoped per session."""

    def insert_session(self, session: Session) -> Session: ...

    def get_session(self, session_id: str) -> Optional[Session]: ...

    def find_session_by_code(self, session_code: str) -> Optional[Session]: ...

    def list_sessions(self, status: Optional[Status] = None) -> list[Session]: ...

    def compare_and_set_session(self, session: Session, expected_version: int) -> bool: ...

    def list_players(self, session_id: str) -> list[Player]: ...

    def insert_player(self, player: Player) -> Player: ...

    def update_players(self, players: Iterable[Player]) -> None: ...

    def session_ids_for_user(self, user_id: str) -> set[str]: ...

    def list_night_actions(self, session_id: str, round_no: int) -> list[NightAction]: ...

    def upsert_night_action(self, action: NightAction) -> None: ...

    def list_votes(self, session_id: str, round_no: int) -> list[Vote]: ...

    def upsert_vote(self, vote: Vote) -> None: ...

    def append_events(self, events: Iterable[Event]) -> list[Event]: ...

    def list_events(self, session_id: str) -> list[Event]: ...

    def append_day_message(self, message: DayMessage) -> DayMessage: ...

    def list_day_messages(self, session_id: str, round_no: Optional[int] = None) -> list[DayMessage]: ...


class InMemorySessionStore:
    """Thread-safe in-memory store. One lock guards every read and write."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._sessions: dict[str, Session] = {}
        self._players: dict[str, dict[str, Player]] = {}
        # (session_id, round_no) -> rows in submission order
        self._actions: dict[tuple[str, int], list[NightAction]] = {}
        self._votes: dict[tuple[str, int], list[Vote]] = {}
        self._events: dict[str, list[Event]] = {}
        self._messages: dict[str, list[DayMessage]] = {}
        self._event_seq = 0
        self._message_seq = 0

    # Sessions

    def insert_session(self, session: Session) -> Session:
        with self._lock:
            if session.id in self._sessions:
                raise ValueError(f"session {session.id} already exists")
            self._sessions[session.id] = session
            self._players.setdefault(session.id, {})
            return session

    def get_session(self, session_id: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(session_id)

    def find_session_by_code(self, session_code: str) -> Optional[Session]:
        with self._lock:
            for session in self._sessions.values():
                if session.session_code == session_code:
                    return session
            return None

    def list_sessions(self, status: Optional[Status] = None) -> list[Session]:
        """Return sessions newest first, optionally filtered by status."""
        with self._lock:
            sessions = [
                s for s in self._sessions.values() if status is None or s.status == status
            ]
        return sorted(sessions, key=lambda s: s.created_at, reverse=True)

    def compare_and_set_session(self, session: Session, expected_version: int) -> bool:
        """
        Write session only if the stored version still equals expected_version.
        The stored copy gets version expected_version + 1. Returns False on conflict.
        """
        with self._lock:
            current = self._sessions.get(session.id)
            if current is None or current.version != expected_version:
                return False
            self._sessions[session.id] = dataclasses.replace(
                session, version=expected_version + 1
            )
            return True

    # Players

    def list_players(self, session_id: str) -> list[Player]:
        with self._lock:
            players = list(self._players.get(session_id, {}).values())
        return sorted(players, key=lambda p: p.seat_no)

    def insert_player(self, player: Player) -> Player:
        with self._lock:
            seats = self._players.setdefault(player.session_id, {})
            if player.id in seats:
                raise ValueError(f"player {player.id} already exists")
            seats[player.id] = player
            return player

    def update_players(self, players: Iterable[Player]) -> None:
        with self._lock:
            for player in players:
                seats = self._players.get(player.session_id)
                if seats is None or player.id not in seats:
                    raise KeyError(player.id)
                seats[player.id] = player

    def session_ids_for_user(self, user_id: str) -> set[str]:
        with self._lock:
            return {
                session_id
                for session_id, seats in self._players.items()
                if any(p.user_id == user_id for p in seats.values())
            }

    # Night actions and votes (last write wins per key, first submission keeps its slot)

    def list_night_actions(self, session_id: str, round_no: int) -> list[NightAction]:
        with self._lock:
            return list(self._actions.get((session_id, round_no), []))

    def upsert_night_action(self, action: NightAction) -> None:
        with self._lock:
            rows = self._actions.setdefault((action.session_id, action.round_no), [])
            for i, row in enumerate(rows):
                if row.actor_player_id == action.actor_player_id and row.action_type == action.action_type:
                    rows[i] = dataclasses.replace(action, created_at=row.created_at)
                    return
            rows.append(action)

    def list_votes(self, session_id: str, round_no: int) -> list[Vote]:
        with self._lock:
            return list(self._votes.get((session_id, round_no), []))

    def upsert_vote(self, vote: Vote) -> None:
        with self._lock:
            rows = self._votes.setdefault((vote.session_id, vote.round_no), [])
            for i, row in enumerate(rows):
                if row.voter_player_id == vote.voter_player_id:
                    rows[i] = dataclasses.replace(vote, created_at=row.created_at)
                    return
            rows.append(vote)

    # Append-only logs

    def append_events(self, events: Iterable[Event]) -> list[Event]:
        stored: list[Event] = []
        with self._lock:
            for event in events:
                self._event_seq += 1
                row = dataclasses.replace(event, id=self._event_seq)
                self._events.setdefault(event.session_id, []).append(row)
                stored.append(row)
        return stored

    def list_events(self, session_id: str) -> list[Event]:
        with self._lock:
            return list(self._events.get(session_id, []))

    def append_day_message(self, message: DayMessage) -> DayMessage:
        with self._lock:
            self._message_seq += 1
            row = dataclasses.replace(message, id=self._message_seq)
            self._messages.setdefault(message.session_id, []).append(row)
            return row

    def list_day_messages(self, session_id: str, round_no: Optional[int] = None) -> list[DayMessage]:
        with self._lock:
            rows = list(self._messages.get(session_id, []))
        if round_no is None:
            return rows
        return [m for m in rows if m.round_no == round_no]
