"""School and class models."""
import uuid
from sqlalchemy import Column, String, DateTime, Boolean, Text, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from careerhub.db.base import Base
from careerhub.utils.timeutils import utcnow


class School(Base):
    __tablename__ = "schools"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    code = Column(String(50), unique=True, nullable=False, index=True)
    address = Column(Text)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)

    # Relationships
    users = relationship("User", back_populates="school")
    classes = relationship("SchoolClass", back_populates="school", cascade="all, delete-orphan")
    orders = relationship("CareerOrder", back_populates="school", cascade="all, delete-orphan")
    licenses = relationship("SchoolCareerLicense", back_populates="school", cascade="all, delete-orphan")


class SchoolClass(Base):
    __tablename__ = "classes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    grade = Column(String(20))
    created_at = Column(DateTime, default=utcnow)

    # Relationships
    school = relationship("School", back_populates="classes")
    students = relationship("User", back_populates="school_class")
    criteria_configs = relationship("ClassCriteriaConfig", back_populates="school_class", cascade="all, delete-orphan")
