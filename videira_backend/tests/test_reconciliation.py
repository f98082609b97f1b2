"""
Unit Tests for the debounced reconciliation refetch
"""

import threading
import time
import unittest

from fakes import FakeTimer
from utils.reconciliation import ReconciliationTrigger


class TestReconciliationTrigger(unittest.TestCase):

    def setUp(self):
        self.calls = []
        FakeTimer.created = []

    def test_reschedule_cancels_pending_timer(self):
        """
        Scenario: Three creates in a row
        Expected: Only the last timer is live, the earlier two are cancelled
        """
        trigger = ReconciliationTrigger(lambda: self.calls.append(1), 1.0, timer_factory=FakeTimer)

        trigger.schedule()
        trigger.schedule()
        trigger.schedule()

        self.assertEqual(len(FakeTimer.created), 3)
        self.assertEqual([t.cancelled for t in FakeTimer.created], [True, True, False])
        self.assertTrue(all(t.daemon and t.started for t in FakeTimer.created))
        self.assertTrue(trigger.pending)

    def test_flush_runs_once(self):
        trigger = ReconciliationTrigger(lambda: self.calls.append(1), 1.0, timer_factory=FakeTimer)
        trigger.schedule()

        self.assertTrue(trigger.flush())
        self.assertFalse(trigger.flush())
        self.assertEqual(self.calls, [1])
        self.assertFalse(trigger.pending)

    def test_cancel_without_pending(self):
        trigger = ReconciliationTrigger(lambda: self.calls.append(1), 1.0, timer_factory=FakeTimer)
        self.assertFalse(trigger.cancel())

    def test_callback_errors_are_swallowed(self):
        def boom():
            raise RuntimeError('network down')

        trigger = ReconciliationTrigger(boom, 1.0, timer_factory=FakeTimer)
        trigger.schedule()

        self.assertTrue(trigger.flush())

    def test_debounced_with_real_timers(self):
        """
        Scenario: Rapid schedules with a short delay
        Expected: The callback runs exactly once after the last schedule
        """
        fired = threading.Event()

        def callback():
            self.calls.append(1)
            fired.set()

        trigger = ReconciliationTrigger(callback, 0.05)
        for _ in range(5):
            trigger.schedule()

        self.assertTrue(fired.wait(2))
        time.sleep(0.2)
        self.assertEqual(self.calls, [1])
        self.assertFalse(trigger.pending)


if __name__ == '__main__':
    unittest.main()
