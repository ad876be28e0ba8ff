"""Learning progress and career suitability evaluation models."""
import uuid
from sqlalchemy import (
    Column, String, DateTime, Float, JSON, ForeignKey, UniqueConstraint, Uuid
)
from careerhub.db.base import Base
from careerhub.utils.timeutils import utcnow

LEARNING_IN_PROGRESS = "IN_PROGRESS"
LEARNING_COMPLETED = "COMPLETED"
LEARNING_STATUSES = (LEARNING_IN_PROGRESS, LEARNING_COMPLETED)

VERY_SUITABLE = "VERY_SUITABLE"
SUITABLE = "SUITABLE"
NOT_SUITABLE = "NOT_SUITABLE"
EVALUATION_RESULTS = (VERY_SUITABLE, SUITABLE, NOT_SUITABLE)


class StudentLearningProgress(Base):
    """How far a student has watched the video of one criteria."""

    __tablename__ = "student_learning_progress"
    __table_args__ = (
        UniqueConstraint("student_id", "career_id", "criteria_id", name="uq_student_learning_progress"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    career_id = Column(Uuid(as_uuid=True), ForeignKey("careers.id", ondelete="CASCADE"), nullable=False)
    criteria_id = Column(Uuid(as_uuid=True), ForeignKey("career_criteria.id", ondelete="CASCADE"), nullable=False)
    video_duration = Column(Float)
    last_watched_position = Column(Float)
    progress_percent = Column(Float, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=LEARNING_IN_PROGRESS)  # IN_PROGRESS / COMPLETED
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class ClassCriteriaWeight(Base):
    """Percentage weight of one configured criteria in a class's career evaluation."""

    __tablename__ = "class_criteria_weights"
    __table_args__ = (UniqueConstraint("class_id", "criteria_id", name="uq_class_criteria_weight"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    class_id = Column(Uuid(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    career_id = Column(Uuid(as_uuid=True), ForeignKey("careers.id", ondelete="CASCADE"), nullable=False)
    criteria_id = Column(Uuid(as_uuid=True), ForeignKey("career_criteria.id", ondelete="CASCADE"), nullable=False)
    weight = Column(Float, nullable=False)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))
    created_at = Column(DateTime, default=utcnow)


class CareerEvaluationThreshold(Base):
    __tablename__ = "career_evaluation_thresholds"
    __table_args__ = (UniqueConstraint("class_id", "career_id", name="uq_evaluation_threshold"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    class_id = Column(Uuid(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    career_id = Column(Uuid(as_uuid=True), ForeignKey("careers.id", ondelete="CASCADE"), nullable=False)
    max_score = Column(Float, nullable=False)
    very_suitable_min = Column(Float, nullable=False)
    suitable_min = Column(Float, nullable=False)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class StudentCareerEvaluation(Base):
    """A student's latest self-evaluation for a career within a class."""

    __tablename__ = "student_career_evaluations"
    __table_args__ = (
        UniqueConstraint("student_id", "career_id", "class_id", name="uq_student_career_evaluation"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    career_id = Column(Uuid(as_uuid=True), ForeignKey("careers.id", ondelete="CASCADE"), nullable=False)
    class_id = Column(Uuid(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    raw_scores = Column(JSON, default=list)  # [{"criteria_id": str, "score": float}]
    weighted_score = Column(Float, nullable=False)
    max_score = Column(Float, nullable=False)
    percentage = Column(Float, nullable=False)
    evaluation_result = Column(String(20), nullable=False)  # VERY_SUITABLE / SUITABLE / NOT_SUITABLE
    evaluated_at = Column(DateTime, default=utcnow)
