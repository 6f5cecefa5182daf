"""
Unit tests for the Notification Channel and the tick-driven timers.
"""

import unittest

from mathpractice.engine.notifications import (
    LevelChanged,
    NotificationChannel,
    RecordingListener,
    RewardGranted,
)
from mathpractice.engine.timers import Countdown, ElapsedClock
from mathpractice.models.problem import DifficultyLevel


def _level_up():
    return LevelChanged(DifficultyLevel.BEGINNER, DifficultyLevel.ELEMENTARY, "up", "addition")


class TestNotificationChannel(unittest.TestCase):
    def setUp(self):
        self.channel = NotificationChannel()

    def test_delivery_in_subscription_order(self):
        calls = []
        self.channel.subscribe(lambda e: calls.append("first"))
        self.channel.subscribe(lambda e: calls.append("second"))

        delivered = self.channel.publish(_level_up())

        self.assertEqual(delivered, 2)
        self.assertEqual(calls, ["first", "second"])

    def test_type_filter(self):
        levels = RecordingListener()
        rewards = RecordingListener()
        self.channel.subscribe(levels, LevelChanged)
        self.channel.subscribe(rewards, RewardGranted)

        self.channel.publish(_level_up())

        self.assertEqual(len(levels.events), 1)
        self.assertEqual(rewards.events, [])

    def test_failing_listener_does_not_stop_delivery(self):
        def broken(event):
            raise RuntimeError("boom")

        recorder = RecordingListener()
        self.channel.subscribe(broken)
        self.channel.subscribe(recorder)

        delivered = self.channel.publish(_level_up())

        self.assertEqual(delivered, 1)
        self.assertEqual(len(recorder.events), 1)

    def test_unsubscribe_callable(self):
        recorder = RecordingListener()
        unsubscribe = self.channel.subscribe(recorder)
        unsubscribe()
        unsubscribe()

        self.assertEqual(self.channel.publish(_level_up()), 0)
        self.assertEqual(len(self.channel), 0)

    def test_unsubscribe_listener(self):
        recorder = RecordingListener()
        self.channel.subscribe(recorder, LevelChanged)
        self.channel.subscribe(recorder, RewardGranted)
        self.channel.unsubscribe(recorder)

        self.assertEqual(len(self.channel), 0)

    def test_no_listeners(self):
        self.assertEqual(self.channel.publish(_level_up()), 0)


class TestRecordingListener:
    def test_of_type_and_clear(self):
        recorder = RecordingListener()
        recorder(_level_up())
        recorder("other")

        assert len(recorder.of_type(LevelChanged)) == 1
        recorder.clear()
        assert recorder.events == []


class TestCountdown:
    def test_fires_once_at_zero(self):
        countdown = Countdown(3)
        countdown.start()

        assert [countdown.tick() for _ in range(5)] == [False, False, True, False, False]
        assert countdown.remaining == 0

    def test_zero_duration_never_runs(self):
        countdown = Countdown(0)
        countdown.start()
        assert countdown.running is False
        assert countdown.tick() is False

    def test_cancel(self):
        countdown = Countdown(2)
        countdown.start()
        countdown.cancel()
        assert countdown.tick() is False
        assert countdown.remaining == 0

    def test_pause_and_resume(self):
        countdown = Countdown(5)
        countdown.start()
        countdown.tick(2)
        countdown.pause()
        countdown.tick(10)
        assert countdown.remaining == 3

        countdown.resume()
        assert countdown.tick(3) is True

    def test_restart_with_new_duration(self):
        countdown = Countdown(5)
        countdown.start(2)
        assert countdown.remaining == 2
        assert countdown.duration == 2

    def test_large_tick_clamps(self):
        countdown = Countdown(2)
        countdown.start()
        assert countdown.tick(10) is True
        assert countdown.remaining == 0


class TestElapsedClock:
    def test_counts_only_while_running(self):
        clock = ElapsedClock()
        assert clock.tick() == 0
        clock.start()
        clock.tick()
        clock.tick(2)
        clock.stop()
        assert clock.tick() == 3
