import datetime as dt
import unittest
from unittest.mock import Mock

from runtime import PomodoroCommands, resolve_period
from storage import SessionStats, SqliteSessionStore, StorageError


class ResolvePeriodTests(unittest.TestCase):
    def test_known_periods_are_normalized(self) -> None:
        self.assertEqual("day", resolve_period("day"))
        self.assertEqual("month", resolve_period(" Month "))

    def test_unknown_or_missing_period_falls_back_to_week(self) -> None:
        self.assertEqual("week", resolve_period("fortnight"))
        self.assertEqual("week", resolve_period(None))


class PomodoroCommandsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = SqliteSessionStore(
            ":memory:",
            now_fn=lambda: dt.datetime(2026, 3, 2, 9, 0, 0),
        )
        self.store.initialize()
        self.addCleanup(self.store.close)
        self.commands = PomodoroCommands(self.store)

    def test_start_creates_record_and_reports_payload(self) -> None:
        result = self.commands.start("write report", work_minutes=25, break_minutes=5, cycles=2)

        self.assertTrue(result.accepted)
        self.assertEqual("started", result.reason)
        record = self.store.current_open()
        self.assertEqual(
            {
                "status": "started",
                "session_id": record.id,
                "task": "write report",
                "work_duration": 25,
                "break_duration": 5,
                "cycles": 2,
            },
            result.payload,
        )
        self.assertIn("Task: write report", result.message)
        self.assertEqual("working", self.commands.coordinator.scheduler.state)

    def test_start_rejects_invalid_configuration(self) -> None:
        result = self.commands.start("x", work_minutes=0, break_minutes=0, cycles=1)

        self.assertFalse(result.accepted)
        self.assertEqual("invalid_configuration", result.reason)
        self.assertIn("error", result.payload)
        self.assertIsNone(self.store.current_open())

    def test_start_rejects_non_finite_minutes(self) -> None:
        for work, brk in [
            (float("nan"), 5),
            (float("inf"), 5),
            (25, float("nan")),
            (25, float("inf")),
        ]:
            with self.subTest(work=work, brk=brk):
                result = self.commands.start("x", work_minutes=work, break_minutes=brk)

                self.assertFalse(result.accepted)
                self.assertEqual("invalid_configuration", result.reason)
                self.assertIn("finite", result.message)
        self.assertIsNone(self.store.current_open())
        self.assertEqual("idle", self.commands.coordinator.scheduler.state)

    def test_start_rejects_second_session(self) -> None:
        existing_id = self.store.create("already running", 1500)

        result = self.commands.start("second", work_minutes=25, break_minutes=5, cycles=1)

        self.assertFalse(result.accepted)
        self.assertEqual("session_active", result.reason)
        self.assertEqual("A session is already running", result.payload["error"])
        self.assertEqual(existing_id, result.payload["session"]["id"])
        self.assertIn("Task: already running", result.message)
        self.assertEqual(1, len(self.store.history(1)))

    def test_start_reports_storage_error(self) -> None:
        store = Mock()
        store.current_open.return_value = None
        store.create.side_effect = StorageError("disk full")

        result = PomodoroCommands(store).start("x", work_minutes=1, break_minutes=0, cycles=1)

        self.assertFalse(result.accepted)
        self.assertEqual("storage_error", result.reason)
        self.assertIn("disk full", result.payload["error"])

    def test_stop_active_run_closes_record(self) -> None:
        self.commands.start("Focus", work_minutes=25, break_minutes=5, cycles=1)
        record_id = self.store.current_open().id

        result = self.commands.stop()

        self.assertTrue(result.accepted)
        self.assertEqual("stopped", result.reason)
        self.assertEqual(record_id, result.payload["session_id"])
        self.assertIsNotNone(self.store.get(record_id).completed_at)
        self.assertTrue(self.commands.coordinator.scheduler.is_stopped)

    def test_stop_closes_session_left_by_another_process(self) -> None:
        record_id = self.store.create("elsewhere", 1500)

        result = self.commands.stop()

        self.assertTrue(result.accepted)
        self.assertEqual(
            {"status": "stopped", "session_id": record_id, "task": "elsewhere"},
            result.payload,
        )
        self.assertIsNone(self.store.current_open())

    def test_stop_without_session_is_rejected(self) -> None:
        result = self.commands.stop()

        self.assertFalse(result.accepted)
        self.assertEqual("no_active_session", result.reason)
        self.assertEqual({"error": "No active session"}, result.payload)
        self.assertEqual("No active session running", result.message)

    def test_status_reports_open_session(self) -> None:
        idle = self.commands.status()
        self.assertTrue(idle.accepted)
        self.assertEqual("idle", idle.reason)
        self.assertEqual({"running": False, "session": None}, idle.payload)
        self.assertEqual("No active session", idle.message)

        self.store.create("Focus", 1500)
        running = self.commands.status()
        self.assertEqual("running", running.reason)
        self.assertTrue(running.payload["running"])
        self.assertEqual("Focus", running.payload["session"]["task"])

    def test_history_lists_sessions_newest_first(self) -> None:
        first = self.store.create("first", 60)
        self.store.complete(first)
        second = self.store.create("second", 60)

        result = self.commands.history(7)

        self.assertTrue(result.accepted)
        self.assertEqual(7, result.payload["days"])
        self.assertEqual({first, second}, {item["id"] for item in result.payload["sessions"]})
        self.assertIn("Pomodoro History (last 7 days):", result.message)

    def test_history_rejects_negative_days(self) -> None:
        result = self.commands.history(-1)
        self.assertFalse(result.accepted)
        self.assertEqual("invalid_configuration", result.reason)

    def test_history_accepts_very_long_window(self) -> None:
        record_id = self.store.create("Focus", 1500)

        result = self.commands.history(1_000_000)

        self.assertTrue(result.accepted)
        self.assertEqual([record_id], [item["id"] for item in result.payload["sessions"]])

    def test_history_empty(self) -> None:
        result = self.commands.history(7)
        self.assertEqual([], result.payload["sessions"])
        self.assertEqual("No sessions found", result.message)

    def test_stats_maps_period_to_lookback_days(self) -> None:
        for period, days in [("day", 1), ("week", 7), ("month", 30), ("year", 365), ("bogus", 7)]:
            with self.subTest(period=period):
                store = Mock()
                store.aggregate.return_value = SessionStats(days, 0, 0, 0)

                result = PomodoroCommands(store).stats(period)

                store.aggregate.assert_called_once_with(days)
                self.assertTrue(result.accepted)
                self.assertEqual(
                    "week" if period == "bogus" else period,
                    result.payload["period"],
                )

    def test_stats_payload_and_message(self) -> None:
        record_id = self.store.create("Focus", 1500)
        self.store.complete(record_id)
        self.store.create("Focus", 1500)

        result = self.commands.stats("week")

        self.assertEqual(2, result.payload["total_sessions"])
        self.assertEqual(1, result.payload["completed_sessions"])
        self.assertEqual(50.0, result.payload["completion_rate"])
        self.assertEqual(25, result.payload["total_focus_minutes"])
        self.assertEqual([{"hour": 9, "count": 1}], result.payload["most_productive_hours"])
        self.assertEqual([{"task": "Focus", "count": 2}], result.payload["task_distribution"])
        self.assertIn("Pomodoro Statistics (week):", result.message)

    def test_stats_reports_storage_error(self) -> None:
        store = Mock()
        store.aggregate.side_effect = StorageError("database is locked")

        result = PomodoroCommands(store).stats("week")

        self.assertFalse(result.accepted)
        self.assertEqual("storage_error", result.reason)


if __name__ == "__main__":
    unittest.main()
