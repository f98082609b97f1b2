"""
Unit Tests for the per-church background job scheduler
"""

import unittest

from utils.sync_scheduler import SyncScheduler


class RecordingService:

    def __init__(self):
        self.runs = []

    def perform_auto_backup(self, owner_id):
        self.runs.append(('backup', owner_id))

    def run_daily_check(self, owner_id):
        self.runs.append(('birthdays', owner_id))


class TestSyncScheduler(unittest.TestCase):

    def setUp(self):
        self.service = RecordingService()
        self.scheduler = SyncScheduler(self.service, self.service)
        self.scheduler.start()
        self.addCleanup(self.scheduler.stop)

    def test_start_is_idempotent(self):
        self.scheduler.start()
        self.assertTrue(self.scheduler.is_running)

    def test_rescheduling_never_duplicates_jobs(self):
        """
        Scenario: Same console registered three times
        Expected: Still one backup job and one birthday job for the owner
        """
        for _ in range(3):
            self.scheduler.schedule_auto_backup('owner-1', interval_hours=24)
            self.scheduler.schedule_birthday_check('owner-1', hour=9)
        self.scheduler.schedule_auto_backup('owner-2')

        status = self.scheduler.get_scheduler_status()

        self.assertTrue(status['is_running'])
        self.assertEqual(sorted(job['id'] for job in status['jobs']),
                         ['auto_backup_owner-1', 'auto_backup_owner-2', 'birthday_check_owner-1'])
        self.assertTrue(all(job['next_run'] for job in status['jobs']))

    def test_unschedule(self):
        self.scheduler.schedule_auto_backup('owner-1')
        self.scheduler.schedule_birthday_check('owner-1')

        self.scheduler.unschedule('owner-1')
        self.scheduler.unschedule('owner-1')

        self.assertEqual(self.scheduler.get_scheduler_status()['jobs'], [])

    def test_stop(self):
        self.scheduler.stop()
        self.assertFalse(self.scheduler.is_running)
        self.assertEqual(self.scheduler.get_scheduler_status()['jobs'], [])


if __name__ == '__main__':
    unittest.main()
