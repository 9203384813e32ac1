"""Periodic billing worker.

Runs the billing run on ``BILLING_RUN_CRON`` (hourly by default) and then
records overdue events. Overlapping triggers are harmless: a run that races
another only finds already-billed periods.
"""
import logging

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from shared.core.config import settings
from shared.core.database import Base, LeasingSessionLocal, leasing_engine
from leasing_service.app import models  # noqa: F401
from leasing_service.app.core.clock import utc_now
from leasing_service.app.services.billing.billing_run import run_billing
from leasing_service.app.services.billing.events import emit_overdue_events

logger = logging.getLogger(__name__)

BILLING_JOB_ID = "generate_due_invoices"


def billing_job(session_factory=LeasingSessionLocal, clock=utc_now):
    now = clock()
    report = run_billing(now, session_factory=session_factory)

    db = session_factory()
    try:
        overdue = emit_overdue_events(db, now)
    finally:
        db.close()

    logger.info(
        f"Billing job: created={report.created} skipped={report.skipped} "
        f"errored={report.errored} overdue_events={overdue}")
    return report


def build_scheduler(session_factory=LeasingSessionLocal) -> BlockingScheduler:
    scheduler = BlockingScheduler(timezone=settings.BILLING_TIMEZONE)
    scheduler.add_job(
        billing_job,
        trigger=CronTrigger.from_crontab(
            settings.BILLING_RUN_CRON, timezone=settings.BILLING_TIMEZONE),
        id=BILLING_JOB_ID,
        name=BILLING_JOB_ID,
        kwargs={"session_factory": session_factory},
        coalesce=True,
        max_instances=1,
        misfire_grace_time=600,
        replace_existing=True,
    )
    return scheduler


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    Base.metadata.create_all(bind=leasing_engine)
    scheduler = build_scheduler()
    logger.info(f"Billing worker started ({settings.BILLING_RUN_CRON})")
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Billing worker stopped")


if __name__ == "__main__":
    main()
