"""Engine configuration, overridable from the environment."""

import os
from dataclasses import dataclass

from circle.rules import (
    MAX_AI_NAME_LENGTH,
    MAX_MESSAGE_LENGTH,
    MAX_PLAYERS,
    MIN_PLAYERS,
    NIGHT_SECONDS,
    SPEAKER_SECONDS,
    VOTE_SECONDS,
)

# Env var names
ENV_MAX_PLAYERS = "NIGHT_PROTOCOL_MAX_PLAYERS"
ENV_SPEAKER_SECONDS = "NIGHT_PROTOCOL_SPEAKER_SECONDS"
ENV_VOTE_SECONDS = "NIGHT_PROTOCOL_VOTE_SECONDS"
ENV_NIGHT_SECONDS = "NIGHT_PROTOCOL_NIGHT_SECONDS"
ENV_MAX_MESSAGE_LENGTH = "NIGHT_PROTOCOL_MAX_MESSAGE_LENGTH"


@dataclass(frozen=True)
class EngineConfig:
    """Tunable limits and phase timings. min_players is fixed by the role deck."""

    min_players: int = MIN_PLAYERS
    max_players: int = MAX_PLAYERS
    speaker_seconds: int = SPEAKER_SECONDS
    vote_seconds: int = VOTE_SECONDS
    night_seconds: int = NIGHT_SECONDS
    max_message_length: int = MAX_MESSAGE_LENGTH
    max_ai_name_length: int = MAX_AI_NAME_LENGTH

    def __post_init__(self) -> None:
        if self.max_players < self.min_players:
            raise ValueError(
                f"max_players ({self.max_players}) must be >= min_players ({self.min_players})"
            )

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build config from NIGHT_PROTOCOL_* env vars, falling back to rule defaults."""
        return cls(
            max_players=_env_int(ENV_MAX_PLAYERS, MAX_PLAYERS),
            speaker_seconds=_env_int(ENV_SPEAKER_SECONDS, SPEAKER_SECONDS),
            vote_seconds=_env_int(ENV_VOTE_SECONDS, VOTE_SECONDS),
            night_seconds=_env_int(ENV_NIGHT_SECONDS, NIGHT_SECONDS),
            max_message_length=_env_int(ENV_MAX_MESSAGE_LENGTH, MAX_MESSAGE_LENGTH),
        )


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
