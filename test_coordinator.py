import tempfile
import threading
import unittest
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from chad.state.coordinator import Coordinator
from chad.state.persistence import Settings, SettingsStore
from chad.state.reminders import Reminder

T0 = 1_700_000_000


class CoordinatorTests(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.path = Path(self.tmp.name) / "chad_memory.json"
        self.now = T0
        self.coordinator = self._make()

    def _make(self, max_requests: int = 5) -> Coordinator:
        return Coordinator(
            max_requests=max_requests,
            window=60,
            max_messages=3,
            store=SettingsStore(self.path),
            clock=lambda: self.now,
        )

    def test_concurrent_admissions_never_exceed_limit(self):
        coordinator = self._make(max_requests=5)
        barrier = threading.Barrier(16)

        def attempt(_):
            barrier.wait()
            return coordinator.admit("alice", now=T0)

        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(attempt, range(16)))
        self.assertEqual(results.count(True), 5)

    def test_admit_uses_clock_by_default(self):
        coordinator = self._make(max_requests=1)
        self.assertTrue(coordinator.admit("alice"))
        self.assertFalse(coordinator.admit("alice"))
        self.now = T0 + 60
        self.assertTrue(coordinator.admit("alice"))

    def test_context_is_capped_and_copied(self):
        for i in range(5):
            self.coordinator.remember("c1", "user", f"alice: m{i}")
        context = self.coordinator.context("c1")
        self.coordinator.remember("c1", "assistant", "later")
        self.assertEqual([m["content"] for m in context], ["alice: m2", "alice: m3", "alice: m4"])

    def test_member_replace_and_remove(self):
        self.coordinator.upsert_member(["alice", "Ali"], "1")
        self.coordinator.replace_member("1", ["alice", "Queen"])
        self.assertIsNone(self.coordinator.lookup_member("Ali"))
        self.assertEqual(self.coordinator.render_mentions("hi @Queen"), "hi <@1>")

        self.coordinator.remove_member("1", ["alice", "Queen"])
        self.assertIsNone(self.coordinator.lookup_member("alice"))
        self.assertIsNone(self.coordinator.lookup_member("Queen"))

    def test_member_leaving_does_not_touch_taken_over_name(self):
        self.coordinator.upsert_member(["alice", "Boss"], "1")
        self.coordinator.upsert_member(["bob", "Boss"], "2")
        self.coordinator.remove_member("1", ["alice", "Boss"])
        self.assertEqual(self.coordinator.lookup_member("Boss"), "2")
        self.assertEqual(self.coordinator.lookup_member("bob"), "2")

    def test_upsert_members_in_bulk(self):
        count = self.coordinator.upsert_members([(("alice", None), "1"), (("bob", "Bobby"), "2")])
        self.assertEqual(count, 2)
        self.assertEqual(self.coordinator.lookup_member("Bobby"), "2")

    def test_pop_due_reminders_in_fire_order(self):
        self.coordinator.add_reminder("c1", "u1", "later", T0 + 50)
        self.coordinator.add_reminder("c1", "u1", "sooner", T0 + 10)
        self.coordinator.add_reminder("c1", "u1", "future", T0 + 500)
        due = self.coordinator.pop_due_reminders(T0 + 100)
        self.assertEqual([r.message for r in due], ["sooner", "later"])
        self.assertEqual([r.message for r in self.coordinator.pending_reminders()], ["future"])

    def test_pending_reminders_are_copies(self):
        reminder = self.coordinator.add_reminder("c1", "u1", "original", T0 + 50)
        copy = self.coordinator.pending_reminders()[0]
        copy.message = "changed"
        self.assertEqual(self.coordinator.pop_reminder(reminder.id).message, "original")

    def test_save_then_load_restores_reminders_and_counter(self):
        self.coordinator.add_reminder("c1", "u1", "a", T0 + 300)
        second = self.coordinator.add_reminder("c2", "u2", "b", T0 + 600)
        self.coordinator.pop_reminder(second.id)
        self.coordinator.save()

        fresh = self._make()
        self.now = T0 + 5
        self.assertTrue(fresh.load())
        self.assertEqual(fresh.pending_reminders(), self.coordinator.pending_reminders())
        self.assertEqual(fresh.reminder_counter, 2)

    def test_load_without_file_starts_fresh(self):
        self.assertFalse(self.coordinator.load())
        self.assertEqual(self.coordinator.pending_reminders(), [])

    def test_restore_never_moves_counter_behind_known_ids(self):
        self.coordinator.restore(
            Settings(timestamp=T0, reminders=[Reminder(9, "c1", "u1", "x", T0 + 10)], reminder_counter=4)
        )
        self.assertEqual(self.coordinator.add_reminder("c1", "u1", "y", T0 + 20).id, 10)

    def test_snapshot_carries_clock_timestamp(self):
        self.assertEqual(self.coordinator.snapshot().timestamp, T0)


if __name__ == "__main__":
    unittest.main()
