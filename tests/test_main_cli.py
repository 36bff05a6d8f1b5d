import io
import json
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import patch

import main
from pomodoro import ManualTickSource
from storage import SqliteSessionStore


class MainCliTests(unittest.TestCase):
    def setUp(self) -> None:
        temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(temp_dir.cleanup)
        root = Path(temp_dir.name)
        self.db_path = root / "pomodoro.db"
        self.config_path = root / "config.toml"
        self.config_path.write_text("[logging]\nlevel = \"ERROR\"\n", encoding="utf-8")

        patcher = patch("main.setup_signal_handlers")
        patcher.start()
        self.addCleanup(patcher.stop)

    def _run(self, *argv: str) -> tuple[int, str]:
        output = io.StringIO()
        with redirect_stdout(output):
            code = main.main(
                ["--config", str(self.config_path), "--db", str(self.db_path), *argv]
            )
        return code, output.getvalue()

    def _store(self) -> SqliteSessionStore:
        store = SqliteSessionStore(self.db_path)
        store.initialize()
        self.addCleanup(store.close)
        return store

    def test_no_command_prints_help(self) -> None:
        output = io.StringIO()
        with redirect_stdout(output):
            code = main.main([])
        self.assertEqual(0, code)
        self.assertIn("usage: pomodoro", output.getvalue())

    def test_start_runs_to_completion(self) -> None:
        with patch("main.ThreadedTickSource", lambda: ManualTickSource(ticks=3)):
            code, output = self._run("start", "-t", "Focus", "-w", "0.05", "-b", "0")

        self.assertEqual(0, code)
        self.assertIn("✓ Pomodoro session started!", output)
        self.assertIn("✓ Cycle 1/1 complete!", output)
        self.assertIn("✓ All cycles complete! Great work!", output)

        records = self._store().history(1)
        self.assertEqual(1, len(records))
        self.assertFalse(records[0].is_open)
        self.assertEqual(3, records[0].duration_seconds)

    def test_start_json_output(self) -> None:
        with patch("main.ThreadedTickSource", lambda: ManualTickSource(ticks=2)):
            code, output = self._run("--json", "start", "-t", "Focus", "-w", "0.0167", "-b", "0.0167")

        self.assertEqual(0, code)
        start_payload, _, rest = output.partition("}\n")
        self.assertEqual("started", json.loads(start_payload + "}")["status"])
        events = [json.loads(line)["event"] for line in rest.splitlines() if line]
        self.assertEqual(["work_completed", "break_started", "run_completed"], events)

    def test_start_interrupted_reports_stop(self) -> None:
        def _stop_immediately(coordinator) -> None:
            coordinator.request_stop()

        with patch("main.setup_signal_handlers", side_effect=_stop_immediately), patch(
            "main.ThreadedTickSource", lambda: ManualTickSource(ticks=0)
        ):
            code, output = self._run("start", "-t", "Focus", "-w", "25")

        self.assertEqual(0, code)
        self.assertIn("⏹ Session stopped during work with 25:00 remaining", output)
        self.assertIsNone(self._store().current_open())

    def test_signal_handlers_are_installed_before_the_record_is_created(self) -> None:
        open_at_install = []

        def _capture(coordinator) -> None:
            open_at_install.append(self._store().current_open())
            coordinator.request_stop()

        with patch("main.setup_signal_handlers", side_effect=_capture), patch(
            "main.ThreadedTickSource", lambda: ManualTickSource(ticks=0)
        ):
            code, _ = self._run("start", "-t", "Focus", "-w", "25")

        self.assertEqual(0, code)
        self.assertEqual([None], open_at_install)
        records = self._store().history(1)
        self.assertEqual(1, len(records))
        self.assertFalse(records[0].is_open)

    def test_start_closes_record_when_output_fails_before_run(self) -> None:
        with patch("main.emit", side_effect=BrokenPipeError(32, "Broken pipe")):
            with self.assertRaises(BrokenPipeError):
                self._run("start", "-t", "Focus", "-w", "25")

        self.assertIsNone(self._store().current_open())
        self.assertEqual(1, len(self._store().history(1)))

    def test_start_rejects_non_finite_minutes(self) -> None:
        for value in ("nan", "inf"):
            with self.subTest(value=value):
                code, output = self._run("start", "-t", "Focus", "-w", value)

                self.assertEqual(1, code)
                self.assertIn("finite", output)
        self.assertIsNone(self._store().current_open())

    def test_start_rejected_while_session_open(self) -> None:
        self._store().create("already running", 1500)

        code, output = self._run("start", "-t", "second")

        self.assertEqual(1, code)
        self.assertIn("A session is already running", output)

    def test_stop_status_history_stats(self) -> None:
        self._store().create("elsewhere", 1500)

        code, output = self._run("status")
        self.assertEqual(0, code)
        self.assertIn("✓ Session running", output)

        code, output = self._run("stop")
        self.assertEqual(0, code)
        self.assertIn("Task: elsewhere", output)

        code, output = self._run("stop")
        self.assertEqual(1, code)
        self.assertIn("No active session running", output)

        code, output = self._run("--json", "status")
        self.assertEqual(0, code)
        self.assertFalse(json.loads(output)["running"])

        code, output = self._run("history", "-d", "7")
        self.assertEqual(0, code)
        self.assertIn("elsewhere", output)

        code, output = self._run("--json", "stats", "-p", "month")
        self.assertEqual(0, code)
        payload = json.loads(output)
        self.assertEqual("month", payload["period"])
        self.assertEqual(1, payload["completed_sessions"])

    def test_invalid_config_exits_with_error(self) -> None:
        self.config_path.write_text("[timer]\ncycles = 0\n", encoding="utf-8")
        code, _ = self._run("status")
        self.assertEqual(1, code)

    def test_unusable_database_path_exits_with_error(self) -> None:
        blocker = self.db_path.parent / "blocker"
        blocker.write_text("file", encoding="utf-8")
        output = io.StringIO()
        with redirect_stdout(output):
            code = main.main(
                ["--config", str(self.config_path), "--db", str(blocker / "x.db"), "status"]
            )
        self.assertEqual(1, code)


if __name__ == "__main__":
    unittest.main()
