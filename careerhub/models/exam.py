"""Exam models."""
import uuid
from sqlalchemy import (
    Column, String, DateTime, Text, Integer, Numeric, Boolean, JSON, ForeignKey, UniqueConstraint, Uuid
)
from sqlalchemy.orm import relationship
from careerhub.db.base import Base
from careerhub.utils.timeutils import utcnow

ATTEMPT_IN_PROGRESS = "IN_PROGRESS"
ATTEMPT_SUBMITTED = "SUBMITTED"
ATTEMPT_GRADED = "GRADED"


class Exam(Base):
    __tablename__ = "exams"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    description = Column(Text)
    career_id = Column(Uuid(as_uuid=True), ForeignKey("careers.id", ondelete="SET NULL"), index=True)
    career_criteria_id = Column(Uuid(as_uuid=True), ForeignKey("career_criteria.id", ondelete="SET NULL"))
    time_limit_minutes = Column(Integer)
    total_points = Column(Numeric(8, 2, asdecimal=False), nullable=False, default=10)
    pass_score = Column(Numeric(8, 2, asdecimal=False))
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))
    created_at = Column(DateTime, default=utcnow)

    # Relationships
    distributions = relationship(
        "ExamQuestionDistribution",
        back_populates="exam",
        cascade="all, delete-orphan",
        order_by="ExamQuestionDistribution.order_index",
    )
    questions = relationship(
        "ExamQuestion",
        back_populates="exam",
        cascade="all, delete-orphan",
        order_by="ExamQuestion.order_index",
    )
    attempts = relationship("ExamAttempt", back_populates="exam", cascade="all, delete-orphan")


class ExamQuestionDistribution(Base):
    """How many questions of which category/criteria/type/difficulty an exam requires."""

    __tablename__ = "exam_question_distributions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    exam_id = Column(Uuid(as_uuid=True), ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(Uuid(as_uuid=True), ForeignKey("question_categories.id", ondelete="SET NULL"))
    career_criteria_id = Column(Uuid(as_uuid=True), ForeignKey("career_criteria.id", ondelete="SET NULL"))
    question_type = Column(String(30))
    difficulty_level = Column(String(20))
    quantity = Column(Integer, nullable=False)
    easy_count = Column(Integer, nullable=False, default=0)
    medium_count = Column(Integer, nullable=False, default=0)
    hard_count = Column(Integer, nullable=False, default=0)
    points_per_question = Column(Numeric(6, 2, asdecimal=False), nullable=False, default=1)
    order_index = Column(Integer, nullable=False, default=0)

    # Relationships
    exam = relationship("Exam", back_populates="distributions")


class ExamQuestion(Base):
    """A question selected into an exam by the allocator."""

    __tablename__ = "exam_questions"
    __table_args__ = (UniqueConstraint("exam_id", "order_index", name="uq_exam_question_order"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    exam_id = Column(Uuid(as_uuid=True), ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Uuid(as_uuid=True), ForeignKey("questions.id"), nullable=False, index=True)
    order_index = Column(Integer, nullable=False)
    points = Column(Numeric(6, 2, asdecimal=False), nullable=False)

    # Relationships
    exam = relationship("Exam", back_populates="questions")
    question = relationship("Question")


class ExamAttempt(Base):
    __tablename__ = "exam_attempts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    exam_id = Column(Uuid(as_uuid=True), ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=ATTEMPT_IN_PROGRESS)  # IN_PROGRESS / SUBMITTED / GRADED
    start_time = Column(DateTime, default=utcnow)
    submit_time = Column(DateTime)
    duration_seconds = Column(Integer)
    total_score = Column(Numeric(8, 2, asdecimal=False))
    max_score = Column(Numeric(8, 2, asdecimal=False), nullable=False, default=0)
    is_auto_graded = Column(Boolean, nullable=False, default=False)
    graded_by = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))
    graded_at = Column(DateTime)

    # Relationships
    exam = relationship("Exam", back_populates="attempts")
    answers = relationship("StudentAnswer", back_populates="attempt", cascade="all, delete-orphan")


class StudentAnswer(Base):
    __tablename__ = "student_answers"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    attempt_id = Column(Uuid(as_uuid=True), ForeignKey("exam_attempts.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Uuid(as_uuid=True), ForeignKey("questions.id"), nullable=False)
    answer_data = Column(JSON)
    is_correct = Column(Boolean)
    score = Column(Numeric(8, 2, asdecimal=False))
    max_score = Column(Numeric(8, 2, asdecimal=False))
    feedback = Column(Text)
    graded_by = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))
    graded_at = Column(DateTime)

    # Relationships
    attempt = relationship("ExamAttempt", back_populates="answers")
    question = relationship("Question")
