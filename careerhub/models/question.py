"""Question catalog models."""
import uuid
from sqlalchemy import (
    Column, String, DateTime, Boolean, Text, Integer, Numeric, ForeignKey, Uuid
)
from sqlalchemy.orm import relationship
from careerhub.db.base import Base
from careerhub.utils.timeutils import utcnow

MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
TRUE_FALSE = "TRUE_FALSE"
SHORT_ANSWER = "SHORT_ANSWER"
ESSAY = "ESSAY"
QUESTION_TYPES = (MULTIPLE_CHOICE, TRUE_FALSE, SHORT_ANSWER, ESSAY)
AUTO_GRADED_TYPES = (MULTIPLE_CHOICE, TRUE_FALSE)
MANUALLY_GRADED_TYPES = (SHORT_ANSWER, ESSAY)

EASY = "EASY"
MEDIUM = "MEDIUM"
HARD = "HARD"
DIFFICULTY_LEVELS = (EASY, MEDIUM, HARD)


class QuestionCategory(Base):
    __tablename__ = "question_categories"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    description = Column(Text)
    order_index = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow)

    # Relationships
    questions = relationship("Question", back_populates="category")


class Question(Base):
    """Question bank entry. `usage_count` grows each time an exam selects it."""

    __tablename__ = "questions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    category_id = Column(Uuid(as_uuid=True), ForeignKey("question_categories.id", ondelete="SET NULL"), index=True)
    career_criteria_id = Column(Uuid(as_uuid=True), ForeignKey("career_criteria.id", ondelete="SET NULL"), index=True)
    content = Column(Text, nullable=False)
    question_type = Column(String(30), nullable=False)  # MULTIPLE_CHOICE / TRUE_FALSE / SHORT_ANSWER / ESSAY
    difficulty_level = Column(String(20), nullable=False)  # EASY / MEDIUM / HARD
    points = Column(Numeric(6, 2, asdecimal=False), nullable=False, default=1)
    explanation = Column(Text)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    usage_count = Column(Integer, nullable=False, default=0)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))
    created_at = Column(DateTime, default=utcnow)

    # Relationships
    category = relationship("QuestionCategory", back_populates="questions")
    options = relationship(
        "QuestionOption",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="QuestionOption.order_index",
    )


class QuestionOption(Base):
    __tablename__ = "question_options"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    question_id = Column(Uuid(as_uuid=True), ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    option_key = Column(String(10), nullable=False)
    option_text = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)
    order_index = Column(Integer, nullable=False, default=0)

    # Relationships
    question = relationship("Question", back_populates="options")
