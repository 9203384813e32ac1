"""Batch materialization of due invoices.

Each billable lease (active, or closed with periods still unbilled) is an
independent unit of work with its own session, so
leases run on a thread pool and one lease's failure never touches another.
Re-running with the same ``now`` only fills gaps: already-billed periods are
rejected by the (lease, period_start) uniqueness guard and counted as skipped.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, time, timezone
from typing import Callable, Iterator, Optional, Union
from uuid import UUID

from sqlalchemy.orm import Session

from shared.core.config import settings
from shared.core.database import LeasingSessionLocal
from ...crud.billing import invoices_crud
from ...crud.leasing import leases_crud
from ...enum.leasing_enum import LeaseStatus
from ...schemas.billing.billing_run_schemas import BillingRunReport, LeaseBillingResult
from .exceptions import BillingError, DuplicatePeriodError
from .lease_terms import BILLABLE_STATUSES, billing_end_date, validate_lease_terms
from .periods import as_date, months_between, period_start_for_index, iter_period_indexes

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


def first_index_on_or_after(lease_start: date, cycle_months: int, cursor: date) -> int:
    index = max(0, months_between(lease_start, cursor) // cycle_months)
    while period_start_for_index(lease_start, cycle_months, index) < cursor:
        index += 1
    return index


def due_period_starts(lease, cursor: Optional[date], today: date) -> Iterator[date]:
    """Period starts from ``cursor`` (last billed period end) through the
    period containing ``today``, never at or past ``lease.end_date``."""
    cycle = lease.billing_cycle_months
    first = first_index_on_or_after(
        lease.start_date, cycle, cursor or lease.start_date)
    for index in iter_period_indexes(lease.start_date, billing_end_date(lease), cycle, first, today):
        yield period_start_for_index(lease.start_date, cycle, index)


def bill_lease(session_factory: SessionFactory, lease_id: UUID, today: date) -> LeaseBillingResult:
    result = LeaseBillingResult(lease_id=lease_id)
    errors = []
    db = session_factory()
    try:
        lease = leases_crud.get_lease_for_billing(db, lease_id)
        # ended and terminated leases still owe the periods before their end
        if lease is None or LeaseStatus(lease.status) not in BILLABLE_STATUSES:
            return result

        validate_lease_terms(lease)
        cursor = invoices_crud.last_materialized_period_end(db, lease.id)

        for period_start in list(due_period_starts(lease, cursor, today)):
            try:
                invoice = invoices_crud.build_and_persist(db, lease, period_start)
                result.created_invoice_ids.append(invoice.id)
            except DuplicatePeriodError:
                db.rollback()
                result.skipped_periods.append(period_start)
            except BillingError as e:
                db.rollback()
                errors.append(f"{period_start}: {e.message}")
                result.error_code = e.status_code
            except Exception as e:
                db.rollback()
                logger.exception(
                    f"Billing failed for lease {lease_id} period {period_start}")
                errors.append(f"{period_start}: {e}")
    except BillingError as e:
        logger.warning(f"Lease {lease_id} skipped: {e.message}")
        errors.append(e.message)
        result.error_code = e.status_code
    except Exception as e:
        db.rollback()
        logger.exception(f"Billing failed for lease {lease_id}")
        errors.append(str(e))
    finally:
        db.close()

    if errors:
        result.error = "; ".join(errors)
    return result


def run_billing(now: Union[date, datetime],
                org_id: Optional[UUID] = None,
                session_factory: SessionFactory = LeasingSessionLocal,
                max_workers: Optional[int] = None) -> BillingRunReport:
    """Create every missing invoice up to the period containing ``now``.

    Never raises for a single lease; failures are reported per lease.
    """
    today = as_date(now)
    run_at = now if isinstance(now, datetime) else datetime.combine(now, time.min, tzinfo=timezone.utc)

    db = session_factory()
    try:
        lease_ids = leases_crud.get_billable_lease_ids(db, org_id)
    finally:
        db.close()

    workers = max(1, max_workers or settings.BILLING_MAX_WORKERS)
    logger.info(
        f"Billing run for {len(lease_ids)} lease(s) as of {today} with {workers} worker(s)")

    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(
            lambda lease_id: bill_lease(session_factory, lease_id, today), lease_ids))

    report = BillingRunReport(run_at=run_at, leases=results)
    report.created = sum(len(r.created_invoice_ids) for r in results)
    report.skipped = sum(len(r.skipped_periods) for r in results)
    report.errored = sum(1 for r in results if r.error)

    logger.info(
        f"Billing run done: created={report.created} skipped={report.skipped} errored={report.errored}")
    return report
