from enum import Enum


class InvoiceStatus(str, Enum):
    draft = "draft"
    issued = "issued"
    paid = "paid"
    void = "void"
    # derived only, never stored
    overdue = "overdue"


class InvoiceItemKind(str, Enum):
    rent = "rent"
    deposit = "deposit"
    charge = "charge"


class InvoiceItemStatus(str, Enum):
    pending_reading = "pending_reading"
    confirmed = "confirmed"


class BillingEventType(str, Enum):
    invoice_created = "InvoiceCreated"
    invoice_issued = "InvoiceIssued"
    invoice_overdue = "InvoiceOverdue"
    item_pending_reading = "ItemPendingReading"
