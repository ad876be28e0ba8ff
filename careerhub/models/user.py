"""User model."""
import uuid
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from careerhub.db.base import Base
from careerhub.utils.timeutils import utcnow

ROLE_ADMIN = "ADMIN"
ROLE_SCHOOL = "SCHOOL"
ROLE_STUDENT = "STUDENT"
ROLES = (ROLE_ADMIN, ROLE_SCHOOL, ROLE_STUDENT)


class User(Base):
    """Admin, school staff or student account."""

    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    full_name = Column(String(150), nullable=False)
    email = Column(String(150), unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String(20), nullable=False, default=ROLE_STUDENT)  # ADMIN / SCHOOL / STUDENT
    school_id = Column(Uuid(as_uuid=True), ForeignKey("schools.id", ondelete="SET NULL"), index=True)
    class_id = Column(Uuid(as_uuid=True), ForeignKey("classes.id", ondelete="SET NULL"), index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)

    # Relationships
    school = relationship("School", back_populates="users")
    school_class = relationship("SchoolClass", back_populates="students")
