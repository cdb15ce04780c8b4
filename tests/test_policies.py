"""
Tests for retry budgets, request pacing and cancellable sleeping.
"""

import math
import threading
import unittest

from archive_search.core.errors import SearchCancelled
from archive_search.http.policies import RequestPacer, RetryPolicy, Sleeper, parse_perseverance


class TestRetryPolicy(unittest.TestCase):
    def test_budget_counts_attempts(self):
        policy = RetryPolicy(perseverance=3)
        self.assertTrue(policy.allows(2))
        self.assertFalse(policy.allows(3))

    def test_unbounded_budget(self):
        policy = RetryPolicy(perseverance=math.inf)
        self.assertTrue(policy.allows(10_000))

    def test_parse_perseverance(self):
        self.assertEqual(parse_perseverance(4), 4)
        self.assertEqual(parse_perseverance("7"), 7)
        self.assertEqual(parse_perseverance(None), math.inf)
        self.assertEqual(parse_perseverance("inf"), math.inf)
        self.assertEqual(parse_perseverance(float("inf")), math.inf)
        with self.assertRaises(ValueError):
            parse_perseverance(0)


class TestSleeper(unittest.TestCase):
    def test_set_event_cancels_sleep(self):
        event = threading.Event()
        event.set()
        sleeper = Sleeper(event)

        with self.assertRaises(SearchCancelled):
            sleeper.sleep(30)

    def test_check_passes_when_not_cancelled(self):
        Sleeper().check()


class RecordingSleeper:
    def __init__(self):
        self.sleeps = []

    def sleep(self, seconds):
        self.sleeps.append(seconds)

    def check(self):
        pass


class TestRequestPacer(unittest.TestCase):
    def test_first_request_is_not_delayed(self):
        sleeper = RecordingSleeper()
        pacer = RequestPacer(min_interval_s=1.0, sleeper=sleeper, clock=lambda: 100.0)

        pacer.wait()

        self.assertEqual(sleeper.sleeps, [])

    def test_sleeps_out_remaining_interval(self):
        ticks = iter([100.0, 100.25, 101.0])
        sleeper = RecordingSleeper()
        pacer = RequestPacer(min_interval_s=1.0, sleeper=sleeper, clock=lambda: next(ticks))

        pacer.wait()
        pacer.wait()

        self.assertEqual(sleeper.sleeps, [0.75])

    def test_cancelled_pacer_stops_before_request(self):
        event = threading.Event()
        event.set()
        pacer = RequestPacer(sleeper=Sleeper(event))

        with self.assertRaises(SearchCancelled):
            pacer.wait()


if __name__ == "__main__":
    unittest.main()
