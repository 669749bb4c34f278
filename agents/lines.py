"""Canned Day lines for AI seats. No model calls."""

from circle.rules import Role

DAY_LINES: dict[Role, tuple[str, ...]] = {
    Role.SHADOW: (
        "I watched hesitation, not innocence.",
        "Noise is easy. Pattern is harder.",
        "I trust questions more than certainty.",
    ),
    Role.ORACLE: (
        "Truth exists, but timing matters.",
        "Someone is shaping perception too fast.",
        "Listen to what is avoided, not what is said.",
    ),
    Role.GUARDIAN: (
        "Protection is never loud.",
        "Someone survived intent last night.",
        "The circle should slow down before choosing.",
    ),
    Role.CITIZEN: (
        "I heard confidence without clarity.",
        "If we rush, shadows win for free.",
        "Ask one sharp question, then listen.",
    ),
}

FALLBACK_LINE = "Presence first. Certainty later."


def get_day_lines() -> dict[str, list[str]]:
    """Return the line pool keyed by role value (for settings / debugging endpoints)."""
    return {role.value: list(lines) for role, lines in DAY_LINES.items()}
