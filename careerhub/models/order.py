"""Career order models."""
import uuid
from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from careerhub.db.base import Base
from careerhub.utils.timeutils import utcnow

ORDER_PENDING = "PENDING"
ORDER_CONFIRMED = "CONFIRMED"
ORDER_CANCELLED = "CANCELLED"


class CareerOrder(Base):
    """A school's purchase of one or more careers."""

    __tablename__ = "career_orders"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=ORDER_PENDING)  # PENDING / CONFIRMED / CANCELLED
    note = Column(Text)
    created_at = Column(DateTime, default=utcnow)

    # Relationships
    school = relationship("School", back_populates="orders")
    items = relationship("CareerOrderItem", back_populates="order", cascade="all, delete-orphan")


class CareerOrderItem(Base):
    __tablename__ = "career_order_items"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_id = Column(Uuid(as_uuid=True), ForeignKey("career_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    career_id = Column(Uuid(as_uuid=True), ForeignKey("careers.id"), nullable=False)

    # Relationships
    order = relationship("CareerOrder", back_populates="items")
    career = relationship("Career")
