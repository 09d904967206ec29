"""
chad/state/coordinator.py

The one object every event handler, command and background job shares.

It owns the rate limiter, member directory, conversation windows and pending
reminders behind a single lock. Each public method is one atomic step; callers
never touch the underlying structures and never do network I/O while the lock
is held; they take a copy (`context`, `pending_reminders`) and work on that.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Iterable

from .history import ConversationEntry, ConversationWindows, Role
from .members import MemberDirectory
from .persistence import DATA_VERSION, Settings, SettingsStore
from .rate_limit import RateLimiter
from .reminders import Reminder

logger = logging.getLogger(__name__)


class Coordinator:
    def __init__(
        self,
        max_requests: int,
        window: float,
        max_messages: int,
        store: SettingsStore,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.clock = clock

        self._lock = threading.RLock()
        self._limiter = RateLimiter(max_requests, window)
        self._members = MemberDirectory()
        self._history = ConversationWindows(max_messages)
        self._reminders: dict[int, Reminder] = {}
        self._reminder_counter = 0

    @classmethod
    def from_config(cls, config: dict[str, Any], clock: Callable[[], float] = time.time) -> "Coordinator":
        rate = config["rate_limit"]
        return cls(
            max_requests=rate["max_requests"],
            window=rate["window"],
            max_messages=config["openrouter"]["max_messages_in_context"],
            store=SettingsStore(config["data_file"]),
            clock=clock,
        )

    # ── Rate limiting ───────────────────────────────────────────────────────

    def admit(self, user_id: str, now: float | None = None) -> bool:
        # read-modify-write on the user's slots: exclusive for the whole check
        with self._lock:
            return self._limiter.admit(user_id, self.clock() if now is None else now)

    # ── Member directory ────────────────────────────────────────────────────

    def upsert_member(self, names: Iterable[str | None], user_id: str) -> None:
        with self._lock:
            self._members.upsert(names, user_id)

    def upsert_members(self, members: Iterable[tuple[Iterable[str | None], str]]) -> int:
        count = 0
        with self._lock:
            for names, user_id in members:
                self._members.upsert(names, user_id)
                count += 1
        return count

    def replace_member(self, user_id: str, names: Iterable[str | None]) -> None:
        with self._lock:
            self._members.replace(user_id, names)

    def remove_member(self, user_id: str, names: Iterable[str | None] = ()) -> None:
        with self._lock:
            self._members.remove_user(user_id)
            self._members.remove(names, user_id)

    def lookup_member(self, name: str) -> str | None:
        with self._lock:
            return self._members.lookup(name)

    def render_mentions(self, text: str) -> str:
        with self._lock:
            return self._members.render_mentions(text)

    # ── Conversation windows ────────────────────────────────────────────────

    def remember(self, channel_id: str, role: Role, content: str) -> None:
        with self._lock:
            self._history.append(channel_id, ConversationEntry(role, content))

    def context(self, channel_id: str) -> list[dict[str, str]]:
        with self._lock:
            return self._history.snapshot(channel_id)

    # ── Reminders ───────────────────────────────────────────────────────────

    def add_reminder(self, channel_id: str, user_id: str, message: str, fire_time: int) -> Reminder:
        with self._lock:
            self._reminder_counter += 1
            reminder = Reminder(self._reminder_counter, channel_id, user_id, message, fire_time)
            self._reminders[reminder.id] = reminder
            return reminder

    def pop_reminder(self, reminder_id: int) -> Reminder | None:
        with self._lock:
            return self._reminders.pop(reminder_id, None)

    def pop_due_reminders(self, now: float) -> list[Reminder]:
        with self._lock:
            due = [r for r in self._reminders.values() if r.fire_time <= now]
            for reminder in due:
                del self._reminders[reminder.id]
        return sorted(due, key=lambda r: (r.fire_time, r.id))

    def pending_reminders(self) -> list[Reminder]:
        with self._lock:
            return [Reminder(**vars(r)) for r in self._reminders.values()]

    @property
    def reminder_counter(self) -> int:
        with self._lock:
            return self._reminder_counter

    # ── Persistence ─────────────────────────────────────────────────────────

    def snapshot(self, now: float | None = None) -> Settings:
        with self._lock:
            return Settings(
                timestamp=int(self.clock() if now is None else now),
                version=DATA_VERSION,
                reminders=[Reminder(**vars(r)) for r in self._reminders.values()],
                reminder_counter=self._reminder_counter,
            )

    def restore(self, settings: Settings) -> None:
        with self._lock:
            self._reminders = {r.id: r for r in settings.reminders}
            known = max(self._reminders, default=0)
            self._reminder_counter = max(settings.reminder_counter, known)

    def save(self) -> None:
        """Snapshot under the lock, write outside it. Raises PersistenceError."""
        self.store.save(self.snapshot())

    def load(self) -> bool:
        """Restore from disk. Returns False when starting fresh. Raises PersistenceError."""
        settings = self.store.load(self.clock())
        if settings is None:
            return False
        self.restore(settings)
        logger.info(
            "Restored %d reminder(s), counter at %d", len(settings.reminders), self.reminder_counter
        )
        return True
