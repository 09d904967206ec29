from .coordinator import Coordinator
from .history import ConversationEntry, ConversationWindows
from .members import MENTION_PATTERN, MemberDirectory
from .persistence import (
    DATA_VERSION,
    MAX_DATA_AGE,
    PersistenceError,
    Settings,
    SettingsStore,
)
from .rate_limit import RateLimiter
from .reminders import Reminder, ReminderScheduler

__all__ = [
    "Coordinator",
    "ConversationEntry",
    "ConversationWindows",
    "MENTION_PATTERN",
    "MemberDirectory",
    "DATA_VERSION",
    "MAX_DATA_AGE",
    "PersistenceError",
    "Settings",
    "SettingsStore",
    "RateLimiter",
    "Reminder",
    "ReminderScheduler",
]
