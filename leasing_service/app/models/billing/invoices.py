import uuid
from sqlalchemy import (
    BigInteger, Column, String, Date, Integer, Numeric, ForeignKey, DateTime, Index, UniqueConstraint, Uuid,
    func, text
)
from sqlalchemy.orm import relationship
from shared.core.database import Base


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    lease_id = Column(Uuid(as_uuid=True), ForeignKey(
        "leases.id"), nullable=False)
    # half-open [period_start, period_end)
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    # draft|issued|paid|void  (overdue is derived, see overdue.py)
    status = Column(String(16), nullable=False, default="draft")
    total_amount_cents = Column(BigInteger, nullable=False, default=0)
    issued_at = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    voided_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True),
                        server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        # one live invoice per lease period; voided rows free the slot
        Index(
            "uq_invoices_lease_period_live",
            "lease_id", "period_start",
            unique=True,
            postgresql_where=text("status <> 'void'"),
            sqlite_where=text("status <> 'void'"),
        ),
    )

    # Relationships
    lease = relationship("Lease", back_populates="invoices")
    items = relationship(
        "InvoiceItem", back_populates="invoice", cascade="all, delete-orphan",
        order_by="InvoiceItem.position")
    history = relationship(
        "InvoiceStatusHistory", back_populates="invoice", cascade="all, delete-orphan",
        order_by="InvoiceStatusHistory.sequence")


# -------------------
# Invoice Items
# -------------------


class InvoiceItem(Base):
    __tablename__ = "invoice_items"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    invoice_id = Column(Uuid(as_uuid=True), ForeignKey(
        "invoices.id", ondelete="CASCADE"), nullable=False)
    lease_charge_id = Column(Uuid(as_uuid=True), ForeignKey(
        "lease_charges.id"), nullable=True)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(64), nullable=False)
    kind = Column(String(16), nullable=False)  # rent|deposit|charge
    mode = Column(String(16), nullable=True)  # fixed|metered, null for deposit
    status = Column(String(24), nullable=False, default="confirmed")  # pending_reading|confirmed
    # null until a metered item is confirmed
    amount_cents = Column(BigInteger, nullable=True)
    unit_price_cents = Column(BigInteger, nullable=True)
    unit_name = Column(String(16), nullable=True)
    meter_start = Column(Numeric(18, 4), nullable=True)
    meter_end = Column(Numeric(18, 4), nullable=True)
    quantity = Column(Numeric(18, 4), nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)

    # Relationship
    invoice = relationship("Invoice", back_populates="items")


# -------------------
# Status history (append-only)
# -------------------
class InvoiceStatusHistory(Base):
    __tablename__ = "invoice_status_history"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    invoice_id = Column(Uuid(as_uuid=True), ForeignKey(
        "invoices.id", ondelete="CASCADE"), nullable=False)
    # 0, 1, 2... per invoice, in transition order
    sequence = Column(Integer, nullable=False, default=0)
    from_status = Column(String(16), nullable=True)
    to_status = Column(String(16), nullable=False)
    changed_at = Column(DateTime(timezone=True), nullable=False)
    changed_by = Column(String(64), nullable=True)

    __table_args__ = (
        UniqueConstraint("invoice_id", "sequence", name="uq_invoice_status_history_seq"),
    )

    invoice = relationship("Invoice", back_populates="history")
