"""
chad/state/reminders.py

Reminder lifecycle: Scheduled -> Fired -> Removed, or Scheduled -> Cancelled -> Removed.

Pending reminders live in the Coordinator (so they are part of the durable
snapshot); this module only owns the timers. Each reminder gets its own
APScheduler `date` job, and a periodic sweep catches anything a timer missed.
Both paths go through `fire()`, which removes the reminder from the pending
set before delivering it, so a reminder is delivered at most once.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from apscheduler.jobstores.base import JobLookupError

if TYPE_CHECKING:
    from apscheduler.schedulers.base import BaseScheduler

    from .coordinator import Coordinator

logger = logging.getLogger(__name__)

SWEEP_INTERVAL_SECONDS = 10
SWEEP_JOB_ID = "reminder_sweep"
REMINDER_TEMPLATE = "<@{user_id}> You asked me to remind you about this: {message}"

SendFn = Callable[[str, str], Awaitable[Any]]


@dataclass
class Reminder:
    id: int
    channel_id: str
    user_id: str
    message: str
    fire_time: int  # unix seconds

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "channelID": self.channel_id,
            "userID": self.user_id,
            "message": self.message,
            "fireTimeUnix": self.fire_time,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Reminder":
        return cls(
            id=int(data["id"]),
            channel_id=str(data["channelID"]),
            user_id=str(data["userID"]),
            message=str(data.get("message", "")),
            fire_time=int(data["fireTimeUnix"]),
        )

    def render(self) -> str:
        return REMINDER_TEMPLATE.format(user_id=self.user_id, message=self.message)


class ReminderScheduler:
    def __init__(
        self,
        coordinator: "Coordinator",
        scheduler: "BaseScheduler",
        send: SendFn,
        clock: Callable[[], float] = time.time,
        sweep_interval: float = SWEEP_INTERVAL_SECONDS,
    ):
        """
        coordinator   : owner of the pending reminder set
        scheduler     : APScheduler instance used for per-reminder timers and the sweep
        send          : coroutine `send(channel_id, content)` delivering to Discord
        clock         : wall clock in unix seconds
        sweep_interval: seconds between catch-up sweeps
        """
        self.coordinator = coordinator
        self.scheduler = scheduler
        self.send = send
        self.clock = clock
        self.sweep_interval = sweep_interval
        self._armed: set[int] = set()

    @staticmethod
    def job_id(reminder_id: int) -> str:
        return f"reminder_{reminder_id}"

    # ── Lifecycle ───────────────────────────────────────────────────────────

    def start(self) -> None:
        self.scheduler.add_job(
            self.sweep,
            "interval",
            seconds=self.sweep_interval,
            id=SWEEP_JOB_ID,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )

    def shutdown(self) -> None:
        """Stop every timer without firing; reminders stay in the durable set."""
        try:
            self.scheduler.remove_job(SWEEP_JOB_ID)
        except JobLookupError:
            pass
        for reminder_id in list(self._armed):
            self._disarm(reminder_id)
        logger.info("All reminder timers stopped")

    async def restore(self) -> int:
        """
        Re-arm reminders loaded from disk.

        Reminders that came due while the bot was offline are delivered right
        away (catch-up policy). Returns the number of timers armed.
        """
        now = self.clock()
        armed = 0
        for reminder in self.coordinator.pending_reminders():
            if reminder.fire_time > now:
                self._arm(reminder)
                armed += 1
        overdue = await self.sweep()
        logger.info("Restored reminders: %d scheduled, %d overdue delivered", armed, overdue)
        return armed

    # ── Operations ──────────────────────────────────────────────────────────

    async def create(self, channel_id: str, user_id: str, message: str, delay: float) -> Reminder:
        """Schedule a reminder `delay` seconds from now; `delay <= 0` fires before returning."""
        now = self.clock()
        fire_time = math.ceil(now + delay) if delay > 0 else int(now)
        reminder = self.coordinator.add_reminder(channel_id, user_id, message, fire_time)
        logger.info(
            "Reminder %d for user %s in channel %s due at %d",
            reminder.id, user_id, channel_id, fire_time,
        )
        if delay <= 0:
            await self.fire(reminder.id)
        else:
            self._arm(reminder)
        return reminder

    async def fire(self, reminder_id: int) -> bool:
        """Deliver a reminder if it is still pending. Returns True if this call consumed it."""
        reminder = self.coordinator.pop_reminder(reminder_id)
        self._disarm(reminder_id)
        if reminder is None:
            return False
        await self._deliver(reminder)
        return True

    async def sweep(self) -> int:
        due = self.coordinator.pop_due_reminders(self.clock())
        for reminder in due:
            self._disarm(reminder.id)
            await self._deliver(reminder)
        return len(due)

    def cancel(self, reminder_id: int) -> bool:
        self._disarm(reminder_id)
        return self.coordinator.pop_reminder(reminder_id) is not None

    @property
    def armed(self) -> set[int]:
        return set(self._armed)

    # ── Internals ───────────────────────────────────────────────────────────

    def _arm(self, reminder: Reminder) -> None:
        self.scheduler.add_job(
            self.fire,
            "date",
            run_date=datetime.fromtimestamp(reminder.fire_time, tz=timezone.utc),
            args=[reminder.id],
            id=self.job_id(reminder.id),
            replace_existing=True,
            misfire_grace_time=None,
        )
        self._armed.add(reminder.id)

    def _disarm(self, reminder_id: int) -> None:
        if reminder_id not in self._armed:
            return
        self._armed.discard(reminder_id)
        try:
            self.scheduler.remove_job(self.job_id(reminder_id))
        except JobLookupError:
            # date jobs are dropped by the scheduler once they run
            pass

    async def _deliver(self, reminder: Reminder) -> None:
        # At-most-once: the reminder is already gone from the pending set.
        try:
            await self.send(reminder.channel_id, reminder.render())
        except Exception as e:  # noqa: BLE001
            logger.error(
                "Failed to send reminder %d to channel %s: %s", reminder.id, reminder.channel_id, e
            )
