from datetime import date, datetime
from typing import Union

from ...enum.billing_enum import InvoiceStatus
from .periods import as_date


def is_overdue(invoice, now: Union[date, datetime]) -> bool:
    # the due date itself is still on time
    return (invoice.status == InvoiceStatus.issued.value
            and as_date(now) > invoice.due_date)


def compute_display_status(invoice, now: Union[date, datetime]) -> str:
    """Stored status, or ``overdue`` for issued invoices past their due date.

    Overdue is never written back to the row; it is a projection of
    ``(status, due_date, now)``.
    """
    if is_overdue(invoice, now):
        return InvoiceStatus.overdue.value
    return invoice.status
