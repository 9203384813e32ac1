import uuid
from sqlalchemy import JSON, Column, String, DateTime, Uuid, func
from shared.core.database import Base


class BillingEvent(Base):
    """Outbox row consumed by the notification dispatcher."""
    __tablename__ = "billing_events"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    # InvoiceCreated|InvoiceIssued|InvoiceOverdue|ItemPendingReading
    event_type = Column(String(32), nullable=False)
    entity_type = Column(String(32), nullable=False)  # Invoice|InvoiceItem
    entity_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    payload = Column(JSON)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    dispatched_at = Column(DateTime(timezone=True), nullable=True)
