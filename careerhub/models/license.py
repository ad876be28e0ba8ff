"""School career license model."""
import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from careerhub.db.base import Base
from careerhub.utils.timeutils import utcnow

LICENSE_ACTIVE = "ACTIVE"
LICENSE_EXPIRED = "EXPIRED"
LICENSE_REVOKED = "REVOKED"
LICENSE_PENDING = "PENDING_ACTIVATION"
LICENSE_STATUSES = (LICENSE_ACTIVE, LICENSE_EXPIRED, LICENSE_REVOKED, LICENSE_PENDING)


class SchoolCareerLicense(Base):
    """A school's time-bounded right to offer a career's content."""

    __tablename__ = "school_career_licenses"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    career_id = Column(Uuid(as_uuid=True), ForeignKey("careers.id"), nullable=False, index=True)
    order_id = Column(Uuid(as_uuid=True), ForeignKey("career_orders.id", ondelete="CASCADE"), index=True)
    order_item_id = Column(Uuid(as_uuid=True), ForeignKey("career_order_items.id", ondelete="SET NULL"))
    status = Column(String(30), nullable=False, default=LICENSE_ACTIVE)
    start_date = Column(DateTime)
    expiry_date = Column(DateTime)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    school = relationship("School", back_populates="licenses")
    career = relationship("Career")
