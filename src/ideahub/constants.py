from __future__ import annotations

from typing import Final

# Discord limits
MAX_MESSAGE_LENGTH: Final[int] = 2000
MAX_BUTTON_LABEL: Final[int] = 80
MAX_CUSTOM_ID: Final[int] = 100
MAX_BUTTONS_PER_ROW: Final[int] = 5

# Policy defaults (all overridable through the environment)
MIN_SUBMISSION_LENGTH: Final[int] = 5
MAX_SUBMISSION_LENGTH: Final[int] = 1000
MIN_COMMENT_LENGTH: Final[int] = 2
MAX_COMMENT_LENGTH: Final[int] = 500
MAX_REJECTION_REASON_LENGTH: Final[int] = 500
SUBMISSION_COOLDOWN_MS: Final[int] = 60_000
COMMENT_RATE_LIMIT: Final[int] = 3
COMMENT_RATE_WINDOW_MS: Final[int] = 30_000
REPUTATION_PER_APPROVAL: Final[int] = 10
ALLOCATOR_MAX_RETRIES: Final[int] = 5

# Upper bound on timestamps kept per rate-limit record
RATE_LIMIT_HISTORY: Final[int] = 20

BROWSE_PAGE_SIZE: Final[int] = 10

# Rate-limit action kinds
ACTION_SUBMIT: Final[str] = "submit"
ACTION_COMMENT: Final[str] = "comment"

# Achievement code -> (approved ideas required, title)
ACHIEVEMENTS = {
    "first_idea": (1, "First idea published"),
    "five_ideas": (5, "Five ideas published"),
    "ten_ideas": (10, "Ten ideas published"),
    "fifty_ideas": (50, "Fifty ideas published"),
}

# Free-text menu labels that behave like commands
MENU_LABELS = {
    "submit idea": "submit",
    "browse ideas": "ideas",
    "help": "help",
    "home": "start",
}

ERROR_MESSAGES = {
    "unexpected": "❌ An error occurred. Please try again.",
    "blocked": "🚫 You are blocked from using this bot.",
    "not_admin": "Only moderators can do that.",
    "unknown_action": "That button is no longer recognised.",
    "unknown_command": "Unknown command. Type /help for the list of commands.",
    "database_error": "A database error occurred. Please try again later.",
}
