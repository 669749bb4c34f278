"""Agents: decision rules and canned lines for AI seats."""

from agents.policy import NightDecision, choose_night_action, choose_vote_target, day_line
from agents.lines import DAY_LINES, FALLBACK_LINE, get_day_lines

__all__ = [
    "NightDecision",
    "choose_night_action",
    "choose_vote_target",
    "day_line",
    "DAY_LINES",
    "FALLBACK_LINE",
    "get_day_lines",
]
