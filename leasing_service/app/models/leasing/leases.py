import uuid
from sqlalchemy import BigInteger, Column, String, Date, Integer, Numeric, DateTime, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from shared.core.database import Base


class Lease(Base):
    __tablename__ = "leases"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    # room and tenant live in the property store
    room_id = Column(Uuid(as_uuid=True), nullable=True)
    tenant_id = Column(Uuid(as_uuid=True), nullable=True)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    billing_cycle_months = Column(Integer, nullable=False, default=1)

    base_rent_cents = Column(BigInteger, nullable=False)
    deposit_cents = Column(BigInteger, nullable=False, default=0)

    rent_increase_type = Column(String(16), nullable=False, default="none")  # none|fixed|percent
    # cents for "fixed", percent for "percent"
    rent_increase_value = Column(Numeric(14, 4), nullable=False, default=0)
    rent_increase_interval_months = Column(Integer, nullable=False, default=12)

    status = Column(String(16), nullable=False, default="draft")  # draft|active|ended|terminated
    terminated_at = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True),
                        server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # relationships
    charges = relationship(
        "LeaseCharge", back_populates="lease", cascade="all, delete-orphan",
        order_by="LeaseCharge.position")
    invoices = relationship("Invoice", back_populates="lease")
