"""
Sync Scheduler
Handles the per-church background jobs (automatic backup, birthday check) using APScheduler
"""

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from datetime import datetime
import logging

logger = logging.getLogger(__name__)


class SyncScheduler:
    """
    One process-wide scheduler; every owner gets at most one job of each kind.
    """

    def __init__(self, backup_service, birthday_service, scheduler=None):
        self.backup_service = backup_service
        self.birthday_service = birthday_service
        self.scheduler = scheduler or BackgroundScheduler()
        self.is_running = False

    def start(self):
        """Start the scheduler"""
        if self.is_running:
            logger.warning("Scheduler already running")
            return

        try:
            self.scheduler.start()
            self.is_running = True
            logger.info("Sync scheduler started successfully")
        except Exception as e:
            logger.error(f"Failed to start sync scheduler: {str(e)}")
            raise

    def stop(self):
        """Stop the scheduler"""
        if not self.is_running:
            return

        try:
            self.scheduler.shutdown()
            self.is_running = False
            logger.info("Sync scheduler stopped")
        except Exception as e:
            logger.error(f"Error stopping scheduler: {str(e)}")

    @staticmethod
    def backup_job_id(owner_id):
        return f"auto_backup_{owner_id}"

    @staticmethod
    def birthday_job_id(owner_id):
        return f"birthday_check_{owner_id}"

    def schedule_auto_backup(self, owner_id, interval_hours=24):
        """(Re)register the automatic backup for one owner"""
        self.scheduler.add_job(
            func=self.backup_service.perform_auto_backup,
            trigger=IntervalTrigger(hours=interval_hours),
            args=[owner_id],
            id=self.backup_job_id(owner_id),
            name=f'Auto Backup ({owner_id})',
            replace_existing=True
        )
        logger.info(f"Auto backup scheduled every {interval_hours}h for user {owner_id}")

    def schedule_birthday_check(self, owner_id, hour=9):
        """(Re)register the daily birthday notification check for one owner"""
        self.scheduler.add_job(
            func=self.birthday_service.run_daily_check,
            trigger=CronTrigger(hour=hour, minute=0),
            args=[owner_id],
            id=self.birthday_job_id(owner_id),
            name=f'Birthday Check ({owner_id})',
            replace_existing=True
        )
        logger.info(f"Birthday check scheduled daily at {hour}h for user {owner_id}")

    def unschedule(self, owner_id):
        """Remove both jobs of one owner, if present"""
        for job_id in (self.backup_job_id(owner_id), self.birthday_job_id(owner_id)):
            if self.scheduler.get_job(job_id):
                self.scheduler.remove_job(job_id)

    def get_scheduler_status(self):
        """Get current scheduler status"""
        jobs = []
        if self.is_running:
            for job in self.scheduler.get_jobs():
                next_run = getattr(job, 'next_run_time', None)
                jobs.append({
                    'id': job.id,
                    'name': job.name,
                    'next_run': next_run.isoformat() if next_run else None
                })

        return {
            'is_running': self.is_running,
            'jobs': jobs,
            'timestamp': datetime.utcnow().isoformat()
        }
