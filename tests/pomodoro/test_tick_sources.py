import unittest
from queue import Empty, Queue

from pomodoro import ClockTick, ManualTickSource, ThreadedTickSource


class ManualTickSourceTests(unittest.TestCase):
    def test_pending_ticks_are_posted_on_start(self) -> None:
        channel: Queue = Queue()
        source = ManualTickSource(ticks=3)
        source.start(channel)

        self.assertEqual(
            [1, 2, 3],
            [channel.get_nowait().sequence for _ in range(3)],
        )
        self.assertTrue(channel.empty())

    def test_advance_continues_sequence(self) -> None:
        channel: Queue = Queue()
        source = ManualTickSource(ticks=1)
        source.start(channel)
        source.advance(2)

        ticks = [channel.get_nowait() for _ in range(3)]
        self.assertEqual([ClockTick(1), ClockTick(2), ClockTick(3)], ticks)

    def test_stop_is_recorded(self) -> None:
        source = ManualTickSource()
        source.stop()
        self.assertTrue(source.stopped)


class ThreadedTickSourceTests(unittest.TestCase):
    def test_rejects_non_positive_interval(self) -> None:
        with self.assertRaises(ValueError):
            ThreadedTickSource(interval_seconds=0)

    def test_posts_sequential_ticks_until_stopped(self) -> None:
        channel: Queue = Queue()
        source = ThreadedTickSource(interval_seconds=0.01)
        source.start(channel)
        try:
            ticks = [channel.get(timeout=2.0) for _ in range(3)]
        finally:
            source.stop()

        self.assertEqual([1, 2, 3], [tick.sequence for tick in ticks])
        self.assertFalse(source.is_running)

    def test_no_ticks_after_stop(self) -> None:
        channel: Queue = Queue()
        source = ThreadedTickSource(interval_seconds=0.01)
        source.start(channel)
        channel.get(timeout=2.0)
        source.stop()

        while True:
            try:
                channel.get_nowait()
            except Empty:
                break
        with self.assertRaises(Empty):
            channel.get(timeout=0.05)

    def test_stop_without_start_is_noop(self) -> None:
        ThreadedTickSource().stop()


if __name__ == "__main__":
    unittest.main()
