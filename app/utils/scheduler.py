"""Background task scheduler for periodic cleanup tasks"""
from apscheduler.schedulers.background import BackgroundScheduler
from datetime import datetime, timedelta
import atexit
import logging

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = None


def init_scheduler(app):
    """Initialize APScheduler with Flask app context"""
    global scheduler

    if scheduler is not None:
        return  # Already initialized

    scheduler = BackgroundScheduler()
    scheduler.configure(
        jobstores={'default': {'type': 'memory'}},
        job_defaults={'coalesce': True, 'max_instances': 1}
    )

    # Audit retention job - runs every day at 3:00 AM
    scheduler.add_job(
        cleanup_old_audit_rows,
        'cron',
        hour=3,
        minute=0,
        args=[app],
        id='cleanup_audit_rows',
        name='Cleanup old audit log rows',
        replace_existing=True
    )

    if not scheduler.running:
        scheduler.start()
        atexit.register(shutdown_scheduler)
        logger.info("Background scheduler started")


def cleanup_old_audit_rows(app, days=None):
    """Delete AuditLog rows older than ``days`` (AUDIT_RETENTION_DAYS by default).

    Returns the number of deleted rows.
    """
    with app.app_context():
        from app import db
        from app.models import AuditLog

        retention_days = days if days is not None else app.config.get('AUDIT_RETENTION_DAYS', 30)
        try:
            cutoff = datetime.utcnow() - timedelta(days=retention_days)
            deleted_count = AuditLog.query.filter(AuditLog.timestamp < cutoff).delete()
            db.session.commit()
            logger.info(f"Audit retention: Deleted {deleted_count} rows older than {retention_days} days")
            return deleted_count
        except Exception as e:
            logger.error(f"Error during audit log retention: {e}")
            db.session.rollback()
            return 0


def shutdown_scheduler():
    """Shutdown the scheduler gracefully"""
    global scheduler

    if scheduler and scheduler.running:
        scheduler.shutdown()
        logger.info("Background scheduler stopped")
