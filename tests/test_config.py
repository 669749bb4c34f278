"""Engine config and chat rate limiter."""

import pytest

from api.rate_limit import ENV_CHAT_MAX_MESSAGES, ChatRateLimiter
from circle.config import ENV_MAX_PLAYERS, ENV_VOTE_SECONDS, EngineConfig


def test_config_defaults():
    config = EngineConfig()
    assert config.min_players == 6
    assert config.max_players == 12
    assert (config.speaker_seconds, config.vote_seconds, config.night_seconds) == (60, 60, 90)
    assert config.max_message_length == 400


def test_config_from_env(monkeypatch):
    monkeypatch.setenv(ENV_MAX_PLAYERS, "10")
    monkeypatch.setenv(ENV_VOTE_SECONDS, "30")
    config = EngineConfig.from_env()
    assert config.max_players == 10
    assert config.vote_seconds == 30
    assert config.night_seconds == 90


def test_config_rejects_bad_values(monkeypatch):
    with pytest.raises(ValueError):
        EngineConfig(max_players=4)
    monkeypatch.setenv(ENV_MAX_PLAYERS, "many")
    with pytest.raises(ValueError):
        EngineConfig.from_env()


def test_rate_limiter_window_and_eviction():
    now = [0.0]
    limiter = ChatRateLimiter(window_seconds=10, max_messages=2, clock=lambda: now[0])
    assert limiter.allow("u1")
    assert limiter.allow("u1")
    assert not limiter.allow("u1")
    assert limiter.allow("u2")
    now[0] = 10.5
    assert limiter.allow("u1")
    # u2's only hit expired and was evicted
    assert len(limiter) == 1


def test_rate_limiter_from_env(monkeypatch):
    monkeypatch.setenv(ENV_CHAT_MAX_MESSAGES, "1")
    limiter = ChatRateLimiter.from_env()
    assert limiter.allow("u1")
    assert not limiter.allow("u1")
    with pytest.raises(ValueError):
        ChatRateLimiter(max_messages=0)
