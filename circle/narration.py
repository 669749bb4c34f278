"""Public and private event wording."""

from typing import Optional

from circle.rules import ROLE_LABEL, Role, VotingChatMode, Winner

WELCOME_LINES = (
    "Welcome to Night Protocol. Presence over performance.",
    "Minimum players: {min_players}. Recommended: 8-12.",
    "Choose your name. Enter the Circle.",
)

ROLES_DEALT = "The Circle is closing. Roles are being assigned."
NIGHT_FALLS = ("The Circle sleeps. No one speaks.", "Shadows awaken.")
NIGHT_LOCKED = "Night actions locked. The Circle remains still."
DAY_OPENING = (
    "The Circle is awake. Speak with care.",
    "Accusations without listening create noise. Ask questions. Watch answers.",
)
OPEN_DISCUSSION = "Discussion is open. Remember: volume is not clarity."
TURN_OVER = "Thank you. Silence."
VOTING_BEGINS = "Voting begins. Choose who you believe is a Shadow."
VOTING_CLOSED = "Voting is now closed."
VOTE_SPLIT = "The Circle is split. No exile today."
VOTE_ACK = "Your vote is recorded."
SETTINGS_UPDATED = "Host updated session settings."


def circle_count(count: int, max_players: int) -> str:
    return f"Players in the Circle: {count} / {max_players}"


def round_begins(round_no: int) -> str:
    return f"Round {round_no} begins."


def shadow_mates(names: list[str]) -> str:
    return f"You recognize the other Shadows: {', '.join(names) or 'none'}."


def dawn(victim_name: Optional[str]) -> str:
    if victim_name is None:
        return "Dawn arrives. No absence. Someone was protected."
    return f"Dawn arrives. An absence is revealed: {victim_name} has faded."


def oracle_truth(target_name: str, role: Role) -> str:
    return f"Truth: {target_name} is {ROLE_LABEL[role]}."


def presence_active(speaker_seconds: int) -> str:
    return f"Presence Mode is active. Each voice receives {speaker_seconds}s. Others remain silent."


def your_turn(name: str) -> str:
    return f"{name}, you may speak."


def vote_timer(vote_seconds: int) -> str:
    return f"You have {vote_seconds}s."


def voting_chat(mode: VotingChatMode) -> str:
    if mode == VotingChatMode.OPEN_SHORT:
        return "Voting chat is briefly open."
    return "Voting chat is closed."


def exile_lines(name: str, role: Optional[Role]) -> tuple[str, str, str]:
    label = ROLE_LABEL[role] if role else "Unknown"
    return (
        f"The Circle has chosen: {name}.",
        f"{name} is exiled from the Circle.",
        f"Revealed truth: {name} was {label}.",
    )


def game_over(winner: Winner) -> str:
    if winner == Winner.CITIZENS:
        return "All Shadows have been removed. Citizens win. Presence held."
    return "Shadows are now equal to the remaining presences. Shadows win. Silence consumes the Circle."
