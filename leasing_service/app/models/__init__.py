# Import all models to ensure they are registered with SQLAlchemy
from .leasing.leases import Lease
from .leasing.lease_charges import LeaseCharge
from .billing.invoices import Invoice, InvoiceItem, InvoiceStatusHistory
from .billing.billing_events import BillingEvent
