import uuid
from sqlalchemy import BigInteger, Boolean, Column, Integer, String, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from shared.core.database import Base


class LeaseCharge(Base):
    __tablename__ = "lease_charges"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    lease_id = Column(Uuid(as_uuid=True), ForeignKey(
        "leases.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(64), nullable=False)
    mode = Column(String(16), nullable=False)  # fixed|metered
    fixed_amount_cents = Column(BigInteger, nullable=True)
    unit_price_cents = Column(BigInteger, nullable=True)
    unit_name = Column(String(16), nullable=True)  # kWh, m3, ...
    billing_cycle_months = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, default=True, nullable=False)
    position = Column(Integer, nullable=False, default=0)

    lease = relationship("Lease", back_populates="charges")
