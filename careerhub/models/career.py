"""Career catalog models."""
import uuid
from sqlalchemy import (
    Column, String, DateTime, Boolean, Text, Integer, JSON, ForeignKey, UniqueConstraint, Uuid
)
from sqlalchemy.orm import relationship
from careerhub.db.base import Base
from careerhub.utils.timeutils import utcnow


class Career(Base):
    """A career (vocation) whose content schools license."""

    __tablename__ = "careers"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)

    # Relationships
    criteria = relationship(
        "CareerCriteria",
        back_populates="career",
        cascade="all, delete-orphan",
        order_by="CareerCriteria.order_index",
    )


class CareerCriteria(Base):
    """Learning-objective unit within a career, carrying video/attachment media."""

    __tablename__ = "career_criteria"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    career_id = Column(Uuid(as_uuid=True), ForeignKey("careers.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text)
    order_index = Column(Integer, nullable=False, default=0)
    video_url = Column(String(500))
    attachments = Column(JSON, default=list)  # list of stored file paths
    created_at = Column(DateTime, default=utcnow)

    # Relationships
    career = relationship("Career", back_populates="criteria")


class ClassCriteriaConfig(Base):
    """A criteria a class is configured to learn for a career."""

    __tablename__ = "class_criteria_configs"
    __table_args__ = (UniqueConstraint("class_id", "criteria_id", name="uq_class_criteria"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    class_id = Column(Uuid(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    career_id = Column(Uuid(as_uuid=True), ForeignKey("careers.id", ondelete="CASCADE"), nullable=False)
    criteria_id = Column(Uuid(as_uuid=True), ForeignKey("career_criteria.id", ondelete="CASCADE"), nullable=False)

    # Relationships
    school_class = relationship("SchoolClass", back_populates="criteria_configs")
    criteria = relationship("CareerCriteria")
